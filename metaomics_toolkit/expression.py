"""
Expression Module for Metaomics Toolkit

Combines per-cell normalized metagenomic and metatranscriptomic profiles into
per-gene expression estimates. For each orthologous group (KO) and each
metagenome/metatranscriptome sample pair:

    gene_abundance       = per-cell abundance of the KO in the metagenome
    transcript_abundance = per-cell abundance of the KO in the metatranscriptome
    expression           = transcript_abundance / gene_abundance

Expression measures how active a gene is independently of how many copies
of it the community carries.
"""

import pandas as pd
import numpy as np
from dataclasses import dataclass
from typing import List, Optional

from .preprocessing import aggregate_by_ko
from .validation import REQUIRED_ANNOTATION_COLUMNS, SampleMatchingError


@dataclass
class ExpressionConfig:
    """Configuration for combining gene and transcript abundances.

    Attributes
    ----------
    metag_column : str
        Metadata column with the metagenomic sample identifier
    metat_column : str
        Metadata column with the metatranscriptomic sample identifier
    pair_column : str
        Metadata column labelling the pair; built from both identifiers if absent
    ko_column : str
        Profile column with the KO identifier
    drop_non_finite : bool
        Remove rows whose expression is not finite (gene abundance of zero)
        instead of only flagging them
    """

    metag_column: str = "sample_metag"
    metat_column: str = "sample_metat"
    pair_column: str = "sample_pair"
    ko_column: str = "KO"
    drop_non_finite: bool = False


def _profile_sample_columns(profile: pd.DataFrame, ko_column: str) -> List[str]:
    excluded = set(REQUIRED_ANNOTATION_COLUMNS) | {ko_column}
    return [col for col in profile.columns if col not in excluded]


def build_sample_pairs(
    metadata: pd.DataFrame, config: Optional[ExpressionConfig] = None
) -> pd.DataFrame:
    """
    Build the sample pairing table from metadata.

    Parameters:
    -----------
    metadata : pd.DataFrame
        Sample metadata, one row per metagenome/metatranscriptome pair
    config : ExpressionConfig, optional
        Column configuration

    Returns:
    --------
    pd.DataFrame : Columns sample_metag, sample_metat, sample_pair (as configured)
    """
    config = config or ExpressionConfig()

    for col in (config.metag_column, config.metat_column):
        if col not in metadata.columns:
            raise SampleMatchingError(f"Pairing column '{col}' not found in metadata")

    columns = [config.metag_column, config.metat_column]
    if config.pair_column in metadata.columns:
        columns.append(config.pair_column)

    pairs = metadata[columns].dropna(subset=[config.metag_column, config.metat_column]).copy()

    if config.pair_column not in pairs.columns:
        pairs[config.pair_column] = (
            pairs[config.metag_column].astype(str) + "|" + pairs[config.metat_column].astype(str)
        )

    n_incomplete = len(metadata) - len(pairs)
    if n_incomplete:
        print(f"Warning: {n_incomplete} metadata rows lack one side of the pair and were skipped")

    return pairs.drop_duplicates().reset_index(drop=True)


def combine_expression(
    profile: pd.DataFrame,
    metadata: pd.DataFrame,
    config: Optional[ExpressionConfig] = None,
    transcript_profile: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Compute expression for every (KO, sample pair).

    Profiles are aggregated by KO first. The metagenomic side of each pair
    gives gene_abundance and the metatranscriptomic side gives
    transcript_abundance. Pairs with either side absent from the profile are
    excluded (inner join); they are never filled with zeros.

    A gene_abundance of zero makes expression non-finite (inf when the
    transcript abundance is positive, NaN when it is zero too). Such rows
    are flagged with expression_finite=False, or removed when
    config.drop_non_finite is set.

    Parameters:
    -----------
    profile : pd.DataFrame
        Per-cell normalized profile holding the metagenomic samples (and the
        metatranscriptomic samples unless transcript_profile is given)
    metadata : pd.DataFrame
        Sample metadata with the pairing columns
    config : ExpressionConfig, optional
        Column configuration
    transcript_profile : pd.DataFrame, optional
        Separate per-cell normalized metatranscriptomic profile

    Returns:
    --------
    pd.DataFrame : One row per (KO, sample pair) with columns
        KO, sample_metag, sample_metat, sample_pair, gene_abundance,
        transcript_abundance, expression, expression_finite
    """
    config = config or ExpressionConfig()
    ko = config.ko_column
    metag = config.metag_column
    metat = config.metat_column

    print("=== COMBINING GENE AND TRANSCRIPT ABUNDANCES ===\n")

    pairs = build_sample_pairs(metadata, config)

    gene_profile = profile
    if transcript_profile is None:
        transcript_profile = profile

    gene_samples = _profile_sample_columns(gene_profile, ko)
    transcript_samples = _profile_sample_columns(transcript_profile, ko)

    has_gene = pairs[metag].isin(gene_samples)
    has_transcript = pairs[metat].isin(transcript_samples)
    usable = has_gene & has_transcript

    excluded = pairs[~usable]
    if not excluded.empty:
        print(
            f"Warning: excluding {len(excluded)} sample pairs missing from the profile: "
            f"{excluded[config.pair_column].tolist()[:5]}{'...' if len(excluded) > 5 else ''}"
        )

    pairs = pairs[usable]
    if pairs.empty:
        print("Warning: no sample pair has both sides in the profile")
        return pd.DataFrame(columns=_output_columns(config))

    used_gene_samples = list(dict.fromkeys(pairs[metag]))
    used_transcript_samples = list(dict.fromkeys(pairs[metat]))

    gene_by_ko = aggregate_by_ko(gene_profile, used_gene_samples, ko)
    transcript_by_ko = aggregate_by_ko(transcript_profile, used_transcript_samples, ko)

    gene_long = gene_by_ko.melt(
        id_vars=[ko], var_name=metag, value_name="gene_abundance"
    )
    transcript_long = transcript_by_ko.melt(
        id_vars=[ko], var_name=metat, value_name="transcript_abundance"
    )

    combined = (
        pairs.merge(gene_long, on=metag, how="inner")
        .merge(transcript_long, on=[ko, metat], how="inner")
    )

    gene_values = combined["gene_abundance"].to_numpy(dtype=float)
    transcript_values = combined["transcript_abundance"].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        expression = transcript_values / gene_values

    combined["expression"] = expression
    combined["expression_finite"] = np.isfinite(expression)

    combined = combined[_output_columns(config)]
    combined = combined.sort_values([ko, config.pair_column]).reset_index(drop=True)

    n_non_finite = int((~combined["expression_finite"]).sum())
    print(f"✓ Expression computed for {combined[ko].nunique()} KOs across {len(pairs)} sample pairs")
    if n_non_finite:
        print(
            f"Warning: {n_non_finite} (KO, sample pair) values have non-finite expression "
            f"(zero or missing gene abundance)"
        )
        if config.drop_non_finite:
            combined = filter_finite_expression(combined)
            print(f"  Dropped them; {len(combined)} rows remain")

    return combined


def _output_columns(config: ExpressionConfig) -> List[str]:
    return [
        config.ko_column,
        config.metag_column,
        config.metat_column,
        config.pair_column,
        "gene_abundance",
        "transcript_abundance",
        "expression",
        "expression_finite",
    ]


def filter_finite_expression(expression_df: pd.DataFrame) -> pd.DataFrame:
    """Keep only rows with a finite expression value."""
    finite = np.isfinite(expression_df["expression"].to_numpy(dtype=float))
    return expression_df[finite].reset_index(drop=True)


def summarize_expression_by_ko(
    expression_df: pd.DataFrame, ko_column: str = "KO"
) -> pd.DataFrame:
    """
    Summarize expression per KO across sample pairs.

    Non-finite values are counted but excluded from the median and mean.

    Returns:
    --------
    pd.DataFrame : Per-KO n_pairs, n_finite, n_non_finite, median_expression, mean_expression
    """
    finite_mask = np.isfinite(expression_df["expression"].to_numpy(dtype=float))

    summary = expression_df.groupby(ko_column).size().to_frame("n_pairs")
    summary["n_finite"] = (
        pd.Series(finite_mask, index=expression_df.index)
        .groupby(expression_df[ko_column])
        .sum()
        .astype(int)
    )
    summary["n_non_finite"] = summary["n_pairs"] - summary["n_finite"]

    finite_stats = (
        expression_df[finite_mask]
        .groupby(ko_column)["expression"]
        .agg(median_expression="median", mean_expression="mean")
    )
    summary = summary.join(finite_stats, how="left")

    return summary.reset_index()


def pivot_expression(
    expression_df: pd.DataFrame,
    value: str = "expression",
    ko_column: str = "KO",
    pair_column: str = "sample_pair",
) -> pd.DataFrame:
    """Reshape the long expression table into a KO x sample pair matrix."""
    if value not in expression_df.columns:
        raise ValueError(f"Column '{value}' not found in expression table")
    matrix = expression_df.pivot(index=ko_column, columns=pair_column, values=value)
    matrix.columns.name = None
    return matrix
