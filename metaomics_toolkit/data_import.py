"""
Data Import Module for Metaomics Toolkit

Functions for loading gene/transcript count matrices and sample metadata tables.
"""

import pandas as pd
import os
from typing import Tuple, List

from .preprocessing import create_standard_data_structure
from .validation import REQUIRED_ANNOTATION_COLUMNS, CountMatrixFormatError


def load_count_matrix(count_file: str, sep: str = "\t") -> pd.DataFrame:
    """
    Load a gene or transcript count matrix.

    Compression (.gz, .bz2, .xz, .zip) is inferred from the file suffix.

    Parameters:
    -----------
    count_file : str
        Path to the tab-separated count matrix with columns
        reference, length, Description, KO and one column per sample
    sep : str
        Column delimiter (default: tab)

    Returns:
    --------
    pd.DataFrame : Count matrix in standardized structure
    """
    if not os.path.exists(count_file):
        raise FileNotFoundError(f"Count matrix file not found: {count_file}")

    try:
        raw = pd.read_csv(count_file, sep=sep, compression="infer")
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise ValueError(f"Error loading count matrix file: {e}")

    count_matrix = create_standard_data_structure(raw)
    print(f"✓ Loaded count matrix: {count_matrix.shape}")

    return count_matrix


def load_sample_metadata(
    metadata_file: str,
    sep: str = ",",
    metag_column: str = "sample_metag",
    metat_column: str = "sample_metat",
) -> pd.DataFrame:
    """
    Load the sample metadata table.

    Parameters:
    -----------
    metadata_file : str
        Path to the comma-separated metadata file, one row per sample pair
    sep : str
        Column delimiter (default: comma)
    metag_column : str
        Column with the metagenomic sample identifier
    metat_column : str
        Column with the metatranscriptomic sample identifier

    Returns:
    --------
    pd.DataFrame : Sample metadata
    """
    if not os.path.exists(metadata_file):
        raise FileNotFoundError(f"Metadata file not found: {metadata_file}")

    try:
        metadata = pd.read_csv(metadata_file, sep=sep, compression="infer")
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise ValueError(f"Error loading metadata file: {e}")

    missing = [col for col in (metag_column, metat_column) if col not in metadata.columns]
    if missing:
        raise ValueError(
            f"Metadata file is missing pairing columns {missing}. "
            f"Available columns: {list(metadata.columns)}"
        )

    print(f"✓ Loaded metadata: {metadata.shape}")
    return metadata


def load_metaomics_data(
    count_file: str, metadata_file: str
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the count matrix and sample metadata.

    Parameters:
    -----------
    count_file : str
        Path to the count matrix (TSV, optionally compressed)
    metadata_file : str
        Path to the sample metadata (CSV)

    Returns:
    --------
    count_matrix : pd.DataFrame
        Count matrix in standardized structure
    metadata : pd.DataFrame
        Sample metadata
    """

    print("=== LOADING METAOMICS DATA ===\n")

    for file_path, file_type in [(count_file, "count matrix"), (metadata_file, "metadata")]:
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"{file_type.capitalize()} file not found: {file_path}")

    count_matrix = load_count_matrix(count_file)
    metadata = load_sample_metadata(metadata_file)

    sample_columns = identify_sample_columns(count_matrix)
    print(f"Identified {len(sample_columns)} sample columns")
    print(f"Unique KOs: {count_matrix['KO'].nunique()}")
    print(f"Rows with unknown length: {(count_matrix['length'] < 0).sum()}")

    print("\nData loading completed successfully!")
    return count_matrix, metadata


def identify_sample_columns(data: pd.DataFrame) -> List[str]:
    """
    Identify sample columns in a count matrix.

    Every column that is not one of reference, length, Description or KO is a sample.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix

    Returns:
    --------
    List[str] : Sample column names
    """
    sample_columns = [col for col in data.columns if col not in REQUIRED_ANNOTATION_COLUMNS]
    if not sample_columns:
        raise CountMatrixFormatError("No sample columns found in count matrix")
    return sample_columns


def split_by_omic(
    count_matrix: pd.DataFrame,
    metadata: pd.DataFrame,
    metag_column: str = "sample_metag",
    metat_column: str = "sample_metat",
) -> Tuple[List[str], List[str]]:
    """
    Split the count matrix sample columns into metagenomic and metatranscriptomic samples.

    Parameters:
    -----------
    count_matrix : pd.DataFrame
        Count matrix holding metagenomic and/or metatranscriptomic samples
    metadata : pd.DataFrame
        Sample metadata with the pairing columns

    Returns:
    --------
    metag_samples : List[str]
        Metagenomic sample columns present in the count matrix
    metat_samples : List[str]
        Metatranscriptomic sample columns present in the count matrix
    """
    sample_columns = identify_sample_columns(count_matrix)
    metag_ids = set(metadata[metag_column].dropna().astype(str))
    metat_ids = set(metadata[metat_column].dropna().astype(str))

    metag_samples = [col for col in sample_columns if str(col) in metag_ids]
    metat_samples = [col for col in sample_columns if str(col) in metat_ids]

    print(f"Metagenomic samples in count matrix: {len(metag_samples)}/{len(metag_ids)}")
    print(f"Metatranscriptomic samples in count matrix: {len(metat_samples)}/{len(metat_ids)}")

    return metag_samples, metat_samples


def merge_count_matrices(
    gene_matrix: pd.DataFrame, transcript_matrix: pd.DataFrame
) -> pd.DataFrame:
    """
    Merge a metagenomic and a metatranscriptomic count matrix on their annotation columns.

    Both matrices are expected to be built against the same gene catalog. References
    present in only one of them get zero counts in the other's samples, since an
    absent reference was not observed in those samples.

    Returns:
    --------
    pd.DataFrame : Single count matrix in standardized structure
    """
    overlap = (
        set(identify_sample_columns(gene_matrix))
        & set(identify_sample_columns(transcript_matrix))
    )
    if overlap:
        raise CountMatrixFormatError(
            f"Sample columns appear in both matrices: {sorted(overlap)[:5]}"
        )

    merged = gene_matrix.merge(
        transcript_matrix,
        on=REQUIRED_ANNOTATION_COLUMNS,
        how="outer",
    )
    sample_columns = identify_sample_columns(merged)
    merged[sample_columns] = merged[sample_columns].fillna(0)

    print(f"✓ Merged count matrices: {merged.shape}")
    return create_standard_data_structure(merged)
