"""
Export Module for Metaomics Toolkit

This module handles exporting normalized profiles, expression tables, sample
metadata and analysis configurations. Configurations are written as
timestamped Python files so an analysis can be reproduced exactly.
"""

import os
import pandas as pd
from datetime import datetime
from typing import Dict, Any, Optional, List

from .normalization import DEFAULT_MARKER_GENES


def export_analysis_results(
    normalized_data: pd.DataFrame,
    expression_df: Optional[pd.DataFrame] = None,
    sample_metadata: Optional[pd.DataFrame] = None,
    statistical_results: Optional[pd.DataFrame] = None,
    output_prefix: str = "metaomics_analysis",
) -> Dict[str, str]:
    """
    Export normalized profile, expression table, metadata and statistical results.

    Parameters:
    -----------
    normalized_data : pd.DataFrame
        Per-cell normalized profile (same schema as the input count matrix)
    expression_df : pd.DataFrame, optional
        Combined expression table
    sample_metadata : pd.DataFrame, optional
        Sample metadata table
    statistical_results : pd.DataFrame, optional
        Output of a statistical analysis
    output_prefix : str
        Prefix for output filenames

    Returns:
    --------
    dict
        Dictionary of exported files
    """

    print("Exporting analysis results...")

    exported_files = {}

    normalized_file = f"{output_prefix}_normalized_profile.tsv"
    normalized_data.to_csv(normalized_file, sep="\t", index=False)
    exported_files["normalized_profile"] = normalized_file
    print(f"Normalized profile exported to: {normalized_file}")

    if expression_df is not None:
        expression_file = f"{output_prefix}_expression.tsv"
        expression_df.to_csv(expression_file, sep="\t", index=False)
        exported_files["expression"] = expression_file
        print(f"Expression table exported to: {expression_file}")

    if sample_metadata is not None:
        metadata_file = f"{output_prefix}_sample_metadata.csv"
        sample_metadata.to_csv(metadata_file, index=False)
        exported_files["sample_metadata"] = metadata_file
        print(f"Sample metadata exported to: {metadata_file}")

    if statistical_results is not None and not statistical_results.empty:
        results_file = f"{output_prefix}_statistical_results.csv"
        statistical_results.to_csv(results_file, index=False)
        exported_files["statistical_results"] = results_file
        print(f"Statistical results exported to: {results_file}")

    return exported_files


def export_timestamped_config(
    config_dict: Dict[str, Any],
    output_prefix: str = "metaomics_analysis",
    analysis_description: str = "Metagenomic/metatranscriptomic expression analysis",
    computed_values: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Export analysis configuration as a timestamped Python file.

    Parameters:
    -----------
    config_dict : dict
        Dictionary containing all configuration parameters
    output_prefix : str
        Prefix for the configuration filename
    analysis_description : str
        Description of the analysis
    computed_values : dict, optional
        Additional computed values to include as comments (e.g. marker medians)

    Returns:
    --------
    str
        Path to the exported configuration file
    """

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config_file = f"{output_prefix}_config_{timestamp}.py"

    print(f"Exporting analysis configuration to: {config_file}")

    with open(config_file, "w", encoding="utf-8") as f:
        f.write(
            "# =============================================================================\n"
        )
        f.write("# METAOMICS EXPRESSION ANALYSIS CONFIGURATION\n")
        f.write(f"# Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write(f"# Analysis: {analysis_description}\n")
        f.write(
            "# =============================================================================\n\n"
        )

        section_configs = [
            (1, "INPUT FILES AND PATHS", ["count_file", "transcript_count_file", "metadata_file"]),
            (2, "SAMPLE PAIRING", ["metag_column", "metat_column", "pair_column"]),
            (3, "DATA FILTERING PARAMETERS", ["min_detection_rate"]),
            (
                4,
                "NORMALIZATION STRATEGY",
                [
                    "marker_genes",
                    "require_full_coverage",
                    "min_marker_median",
                    "on_zero_median",
                ],
            ),
            (5, "EXPRESSION SETTINGS", ["drop_non_finite"]),
            (
                6,
                "STATISTICAL ANALYSIS STRATEGY",
                [
                    "covariate_column",
                    "correlation_method",
                    "group_column",
                    "group_labels",
                    "min_pairs",
                    "correction_method",
                    "p_value_threshold",
                ],
            ),
            (7, "OUTPUT AND EXPORT SETTINGS", ["export_results", "output_prefix"]),
        ]

        for section_num, section_name, param_names in section_configs:
            _write_config_section(
                f, section_name, config_dict, param_names, section_num
            )

        if computed_values:
            f.write(
                "# =============================================================================\n"
            )
            f.write("# COMPUTED VALUES (for reference)\n")
            f.write(
                "# =============================================================================\n"
            )

            for key, value in computed_values.items():
                if isinstance(value, dict):
                    f.write(f"# {key}:\n")
                    for sub_key, sub_value in value.items():
                        f.write(f"#   {sub_key}: {sub_value}\n")
                else:
                    f.write(f"# {key}: {value}\n")

    return config_file


def _write_config_section(
    file_handle,
    section_name: str,
    config_dict: Dict[str, Any],
    param_names: List[str],
    section_number: int = 1,
) -> None:
    """Write a configuration section to file."""

    file_handle.write(
        "# =============================================================================\n"
    )
    file_handle.write(f"# {section_number}. {section_name}\n")
    file_handle.write(
        "# =============================================================================\n"
    )

    for param in param_names:
        if param in config_dict:
            value = config_dict[param]
            file_handle.write(f"{param} = {repr(value)}\n")

    file_handle.write("\n")


def create_config_dict_from_notebook_vars(**kwargs) -> Dict[str, Any]:
    """
    Create a configuration dictionary from notebook variables.

    Unknown keyword arguments are kept, known ones override the defaults.

    Returns:
    --------
    dict
        Configuration dictionary
    """
    config_template = {
        # Input files
        "count_file": "",
        "transcript_count_file": "",
        "metadata_file": "",
        # Sample pairing
        "metag_column": "sample_metag",
        "metat_column": "sample_metat",
        "pair_column": "sample_pair",
        # Data filtering
        "min_detection_rate": 0.0,
        # Normalization
        "marker_genes": list(DEFAULT_MARKER_GENES),
        "require_full_coverage": False,
        "min_marker_median": 0.0,
        "on_zero_median": "raise",
        # Expression
        "drop_non_finite": False,
        # Statistics
        "covariate_column": "Temperature",
        "correlation_method": "spearman",
        "group_column": "polar",
        "group_labels": [],
        "min_pairs": 5,
        "correction_method": "fdr_bh",
        "p_value_threshold": 0.05,
        # Output
        "export_results": True,
        "output_prefix": "metaomics_analysis",
    }

    config_dict = config_template.copy()
    config_dict.update(kwargs)

    return config_dict


def export_complete_analysis(
    normalized_data: pd.DataFrame,
    expression_df: pd.DataFrame,
    sample_metadata: pd.DataFrame,
    config_dict: Dict[str, Any],
    statistical_results: Optional[pd.DataFrame] = None,
    marker_medians: Optional[pd.Series] = None,
    output_prefix: str = "metaomics_analysis",
    analysis_description: str = "Metagenomic/metatranscriptomic expression analysis",
) -> Dict[str, str]:
    """
    Export complete analysis including data, results, and timestamped configuration.

    Returns:
    --------
    dict
        Dictionary of all exported files
    """
    output_dir = os.path.dirname(output_prefix)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    exported_files = export_analysis_results(
        normalized_data=normalized_data,
        expression_df=expression_df,
        sample_metadata=sample_metadata,
        statistical_results=statistical_results,
        output_prefix=output_prefix,
    )

    computed_values = {
        "n_kos": int(expression_df["KO"].nunique()) if not expression_df.empty else 0,
        "n_sample_pairs": int(expression_df["sample_pair"].nunique()) if not expression_df.empty else 0,
        "n_non_finite_expression": int((~expression_df["expression_finite"].astype(bool)).sum())
        if not expression_df.empty
        else 0,
    }
    if marker_medians is not None:
        computed_values["marker_medians"] = {
            sample: f"{value:.6g}" for sample, value in marker_medians.items()
        }

    config_file = export_timestamped_config(
        config_dict,
        output_prefix=output_prefix,
        analysis_description=analysis_description,
        computed_values=computed_values,
    )
    exported_files["configuration"] = config_file

    print("\n" + "=" * 60)
    print("✓ All analysis results and configuration exported successfully!")
    print("Files created:")
    for label, path in exported_files.items():
        print(f"  • {path} - {label.replace('_', ' ')}")
    print("=" * 60)

    return exported_files
