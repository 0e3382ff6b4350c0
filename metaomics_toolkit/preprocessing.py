"""
Data Preprocessing Module for Metaomics Toolkit

Functions for standardizing count matrices, assessing detection completeness,
and aggregating reference sequences into orthologous groups (KOs).
"""

import pandas as pd
from typing import List, Optional

from .validation import REQUIRED_ANNOTATION_COLUMNS, CountMatrixFormatError


def create_standard_data_structure(
    data: pd.DataFrame, sample_columns: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Create standardized data structure with exactly 4 annotation columns followed by sample columns.

    Expected structure:
    1. reference (gene catalog sequence identifier)
    2. length (gene length; -1 when unknown)
    3. Description (functional description, may be empty)
    4. KO (KEGG Orthology identifier)
    5. Sample columns (one numeric column per sample)

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix as read from disk
    sample_columns : List[str], optional
        Sample columns to keep. If None, every non-annotation column is kept

    Returns:
    --------
    pd.DataFrame
        Standardized data structure with proper column order and numeric sample data
    """

    missing_cols = [col for col in REQUIRED_ANNOTATION_COLUMNS if col not in data.columns]
    if missing_cols:
        raise CountMatrixFormatError(
            f"Missing required annotation columns: {missing_cols}. "
            f"Count matrices must provide {REQUIRED_ANNOTATION_COLUMNS}."
        )

    if sample_columns is None:
        sample_columns = [col for col in data.columns if col not in REQUIRED_ANNOTATION_COLUMNS]

    if not sample_columns:
        raise CountMatrixFormatError("Count matrix has no sample columns")

    result_data = pd.DataFrame(index=data.index)
    result_data["reference"] = data["reference"]
    result_data["length"] = pd.to_numeric(data["length"], errors="coerce")
    result_data["Description"] = data["Description"].fillna("")
    result_data["KO"] = data["KO"]

    non_numeric = []
    for col in sample_columns:
        values = pd.to_numeric(data[col], errors="coerce")
        # Coercion must not invent missing values
        if values.isna().sum() > data[col].isna().sum():
            non_numeric.append(col)
        result_data[col] = values

    if non_numeric:
        raise CountMatrixFormatError(
            f"Sample columns contain non-numeric values: {non_numeric[:5]}"
            f"{'...' if len(non_numeric) > 5 else ''}"
        )

    if result_data["length"].isna().any():
        n_missing = int(result_data["length"].isna().sum())
        print(f"Warning: {n_missing} rows have a missing length; marking them as unknown (-1)")
        result_data["length"] = result_data["length"].fillna(-1)

    return result_data


def identify_annotation_columns(data: pd.DataFrame) -> List[str]:
    """Return the annotation columns present in the data, in standard order."""
    return [col for col in REQUIRED_ANNOTATION_COLUMNS if col in data.columns]


def assess_data_completeness(data: pd.DataFrame, sample_columns: List[str]) -> pd.Series:
    """
    Assess data completeness across samples.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix
    sample_columns : List[str]
        List of sample column names

    Returns:
    --------
    pd.Series : Fraction of genes detected (non-zero) per sample
    """

    print("=== ASSESSING DATA COMPLETENESS ===\n")

    sample_data = data[sample_columns]

    total_values = sample_data.shape[0] * sample_data.shape[1]
    non_zero_values = (sample_data.fillna(0) != 0).sum().sum()

    print("Data completeness summary:")
    print(f"Total possible values: {total_values:,}")
    if total_values:
        print(
            f"Non-zero values: {non_zero_values:,} ({non_zero_values / total_values * 100:.1f}%)"
        )

    detection = (sample_data.fillna(0) != 0).sum(axis=0) / max(len(data), 1)

    print("\nPer-sample detection:")
    for sample in sample_columns:
        print(f"{sample}: {detection[sample] * 100:.1f}% of genes detected")

    genes_per_sample = (sample_data.fillna(0) != 0).sum(axis=1)
    print("\nGene detection summary:")
    print(f"Genes detected in all samples: {(genes_per_sample == len(sample_columns)).sum()}")
    print(f"Genes detected in >50% samples: {(genes_per_sample > 0.5 * len(sample_columns)).sum()}")
    print(f"Genes never detected: {(genes_per_sample == 0).sum()}")

    return detection


def filter_genes_by_prevalence(
    data: pd.DataFrame, sample_columns: List[str], min_detection_rate: float = 0.5
) -> pd.DataFrame:
    """
    Filter genes based on detection prevalence across samples.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix
    sample_columns : List[str]
        List of sample column names
    min_detection_rate : float
        Minimum fraction of samples where the gene must be non-zero (default: 0.5)

    Returns:
    --------
    pd.DataFrame : Filtered data (a new table)
    """

    print("=== FILTERING GENES BY PREVALENCE ===\n")

    if not 0 <= min_detection_rate <= 1:
        raise ValueError("min_detection_rate must be between 0 and 1")

    sample_data = data[sample_columns].fillna(0)
    detection_rates = (sample_data != 0).sum(axis=1) / len(sample_columns)

    filtered_data = data[detection_rates >= min_detection_rate].copy()

    print(f"Original genes: {len(data)}")
    print(
        f"Genes with ≥{min_detection_rate * 100:.0f}% detection rate: {len(filtered_data)}"
    )
    print(f"Removed: {len(data) - len(filtered_data)} genes")

    return filtered_data


def aggregate_by_ko(
    data: pd.DataFrame, sample_columns: List[str], ko_column: str = "KO"
) -> pd.DataFrame:
    """
    Sum all rows annotated with the same orthologous group.

    A KO may be annotated on several reference sequences, so per-KO abundance
    is the sum over its rows. Rows without a KO are dropped.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix or normalized profile
    sample_columns : List[str]
        Sample columns to aggregate
    ko_column : str
        Column holding the KO identifier

    Returns:
    --------
    pd.DataFrame : One row per KO with the KO column followed by the sample columns
    """
    if ko_column not in data.columns:
        raise CountMatrixFormatError(f"Column '{ko_column}' not found; cannot aggregate by KO")

    annotated = data[data[ko_column].notna() & (data[ko_column].astype(str).str.strip() != "")]
    n_dropped = len(data) - len(annotated)
    if n_dropped:
        print(f"Dropped {n_dropped} rows without a {ko_column} annotation before aggregation")

    # min_count=1 keeps an all-NaN group as NaN instead of a fabricated 0
    aggregated = (
        annotated.groupby(ko_column, sort=True)[sample_columns]
        .sum(min_count=1)
        .reset_index()
    )

    print(f"Aggregated {len(annotated)} rows into {len(aggregated)} {ko_column} groups")

    return aggregated

