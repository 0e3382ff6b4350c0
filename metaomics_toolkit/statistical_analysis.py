"""
Statistical Analysis Module for Metaomics Expression Data

Per-KO association of expression with environmental covariates
(e.g. temperature) and comparison of expression between sample groups
(e.g. polar vs non-polar), with multiple testing correction.
Non-finite expression values are always excluded before testing.
"""

import pandas as pd
import numpy as np
from scipy.stats import spearmanr, pearsonr, mannwhitneyu
from statsmodels.stats.multitest import multipletests

from .expression import filter_finite_expression


class StatisticalConfig:
    """Configuration class for expression statistics

    Supports two analysis types:
    - 'correlation': Association of expression with a numeric covariate
      (requires covariate_column)
    - 'group_comparison': Mann-Whitney U test between two groups
      (requires group_column and exactly two group_labels)
    """

    def __init__(self):
        self.analysis_type = "correlation"

        # Correlation parameters
        self.covariate_column = "Temperature"
        self.correlation_method = "spearman"  # "spearman" or "pearson"

        # Group comparison parameters
        self.group_column = "polar"
        self.group_labels = []

        # Metadata column joining the expression table to covariates
        self.sample_column = "sample_metag"

        # Minimum number of finite sample pairs per KO
        self.min_pairs = 5

        # Multiple testing correction
        self.correction_method = "fdr_bh"
        self.p_value_threshold = 0.05

    def validate(self):
        """Validate that required parameters are set for the chosen analysis type"""
        if self.analysis_type == "correlation":
            if not self.covariate_column:
                raise ValueError("correlation analysis requires covariate_column")
            if self.correlation_method not in ("spearman", "pearson"):
                raise ValueError("correlation_method must be 'spearman' or 'pearson'")
        elif self.analysis_type == "group_comparison":
            if not self.group_column:
                raise ValueError("group_comparison analysis requires group_column")
            if len(self.group_labels) != 2:
                raise ValueError("group_comparison analysis requires exactly two group_labels")
        else:
            raise ValueError(
                "analysis_type must be 'correlation' or 'group_comparison'"
            )

        if self.min_pairs < 3:
            raise ValueError("min_pairs must be at least 3")

        return True


def _join_metadata(expression_df, metadata, config, columns):
    """Attach metadata columns to finite expression values."""
    missing = [col for col in [config.sample_column] + columns if col not in metadata.columns]
    if missing:
        raise ValueError(f"Metadata is missing columns: {missing}")

    finite = filter_finite_expression(expression_df)
    meta = metadata[[config.sample_column] + columns].drop_duplicates(subset=config.sample_column)
    return finite.merge(meta, on=config.sample_column, how="inner")


def _create_empty_result(ko, reason, n_pairs=0):
    """Create empty result for a KO that could not be tested"""
    return {
        "KO": ko,
        "statistic": np.nan,
        "P.Value": np.nan,
        "n_pairs": n_pairs,
        "test_method": f"Failed: {reason}",
    }


def correlate_expression_with_covariate(expression_df, metadata, config):
    """
    Correlate per-KO expression with a metadata covariate.

    Parameters:
    -----------
    expression_df : pd.DataFrame
        Output of combine_expression()
    metadata : pd.DataFrame
        Sample metadata holding the covariate
    config : StatisticalConfig
        Analysis configuration (covariate_column, correlation_method)

    Returns:
    --------
    pd.DataFrame : Per-KO correlation, P.Value, adj.P.Val and Significant
    """
    config.analysis_type = "correlation"
    config.validate()

    print(f"Correlating expression with {config.covariate_column} ({config.correlation_method})...")

    data = _join_metadata(expression_df, metadata, config, [config.covariate_column])
    data = data.dropna(subset=[config.covariate_column])

    correlate = spearmanr if config.correlation_method == "spearman" else pearsonr

    results = []
    for ko, ko_df in data.groupby("KO"):
        n_pairs = len(ko_df)
        if n_pairs < config.min_pairs:
            results.append(_create_empty_result(ko, "Insufficient data", n_pairs))
            continue

        if ko_df["expression"].nunique() < 2 or ko_df[config.covariate_column].nunique() < 2:
            results.append(_create_empty_result(ko, "Constant values", n_pairs))
            continue

        statistic, p_value = correlate(
            ko_df[config.covariate_column].astype(float), ko_df["expression"].astype(float)
        )
        results.append(
            {
                "KO": ko,
                "statistic": float(statistic),
                "P.Value": float(p_value),
                "n_pairs": n_pairs,
                "test_method": f"{config.correlation_method.capitalize()} correlation",
            }
        )

    results_df = pd.DataFrame(results, columns=["KO", "statistic", "P.Value", "n_pairs", "test_method"])
    results_df = results_df.rename(columns={"statistic": "correlation"})

    print(f"✓ Correlation computed for {len(results_df)} KOs")

    return apply_multiple_testing_correction(results_df, config)


def compare_expression_between_groups(expression_df, metadata, config):
    """
    Compare per-KO expression between two groups of samples.

    Parameters:
    -----------
    expression_df : pd.DataFrame
        Output of combine_expression()
    metadata : pd.DataFrame
        Sample metadata holding the group column
    config : StatisticalConfig
        Analysis configuration (group_column, group_labels)

    Returns:
    --------
    pd.DataFrame : Per-KO medians, log2 fold change (group2 vs group1),
        Mann-Whitney U, P.Value, adj.P.Val and Significant
    """
    config.analysis_type = "group_comparison"
    config.validate()

    label1, label2 = config.group_labels
    print(f"Comparing expression between {config.group_column}={label1} and {label2}...")

    data = _join_metadata(expression_df, metadata, config, [config.group_column])

    results = []
    for ko, ko_df in data.groupby("KO"):
        group1 = ko_df.loc[ko_df[config.group_column] == label1, "expression"]
        group2 = ko_df.loc[ko_df[config.group_column] == label2, "expression"]
        n_pairs = len(group1) + len(group2)

        if len(group1) < 2 or len(group2) < 2 or n_pairs < config.min_pairs:
            results.append(_create_empty_result(ko, "Insufficient group data", n_pairs))
            continue

        statistic, p_value = mannwhitneyu(group2, group1, alternative="two-sided")

        median1 = group1.median()
        median2 = group2.median()
        if median1 > 0 and median2 > 0:
            log_fc = np.log2(median2 / median1)
        else:
            log_fc = np.nan

        results.append(
            {
                "KO": ko,
                "statistic": float(statistic),
                "P.Value": float(p_value),
                "n_pairs": n_pairs,
                "test_method": "Mann-Whitney U",
                "median_group1": median1,
                "median_group2": median2,
                "logFC": log_fc,
            }
        )

    results_df = pd.DataFrame(
        results,
        columns=[
            "KO", "statistic", "P.Value", "n_pairs", "test_method",
            "median_group1", "median_group2", "logFC",
        ],
    )

    print(f"✓ Group comparison completed for {len(results_df)} KOs")

    return apply_multiple_testing_correction(results_df, config)


def apply_multiple_testing_correction(results_df, config):
    """Apply multiple testing correction"""

    results_df = results_df.copy()
    valid = results_df["P.Value"].notna()

    if not valid.any():
        print("Warning: No valid p-values found")
        results_df["adj.P.Val"] = np.nan
        results_df["Significant"] = False
        return results_df

    if config.correction_method == "none":
        results_df["adj.P.Val"] = results_df["P.Value"]
    else:
        # Only tested KOs count towards the number of hypotheses
        _, adj_pvalues, _, _ = multipletests(
            results_df.loc[valid, "P.Value"], method=config.correction_method
        )
        results_df["adj.P.Val"] = np.nan
        results_df.loc[valid, "adj.P.Val"] = adj_pvalues

    results_df["Significant"] = results_df["adj.P.Val"] < config.p_value_threshold

    print("Multiple testing correction applied:")
    print(f"  Method: {config.correction_method}")
    print(
        f"  Significant KOs (adjusted p < {config.p_value_threshold}): {int(results_df['Significant'].sum())}"
    )

    return results_df.sort_values("P.Value", na_position="last").reset_index(drop=True)
