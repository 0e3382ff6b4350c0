"""
Data Normalization Module for Metaomics Toolkit

Functions for normalizing gene and transcript count matrices: gene length
normalization, sequencing depth normalization, and per-cell normalization
by the abundance of universal single-copy marker genes.
"""

import pandas as pd
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Optional, Any, List, Mapping, Union

from .validation import (
    REQUIRED_ANNOTATION_COLUMNS,
    CountMatrixFormatError,
    NormalizationError,
    MarkerGeneError,
)


# =============================================================================
# MARKER GENE CONFIGURATION
# =============================================================================

# Universal single-copy housekeeping genes used as a per-cell reference
DEFAULT_MARKER_GENES = (
    "K06942",  # ychF, ribosome-binding ATPase
    "K01889",  # pheS, phenylalanyl-tRNA synthetase alpha chain
    "K01887",  # argS, arginyl-tRNA synthetase
    "K01875",  # serS, seryl-tRNA synthetase
    "K01883",  # cysS, cysteinyl-tRNA synthetase
    "K01869",  # leuS, leucyl-tRNA synthetase
    "K01873",  # valS, valyl-tRNA synthetase
    "K01409",  # tsaD, tRNA N6-adenosine threonylcarbamoyltransferase
    "K03106",  # ffh, signal recognition particle subunit SRP54
    "K03110",  # ftsY, signal recognition particle receptor
)


@dataclass
class MarkerGeneConfig:
    """Configuration for per-cell normalization by marker genes.

    Attributes
    ----------
    marker_genes : List[str]
        KO identifiers of universal, single-copy marker genes
    require_full_coverage : bool
        If True, a count matrix lacking any marker KO is rejected.
        If False, the marker median is computed over the markers present.
    min_marker_median : float
        Marker medians at or below this value are treated as zero
    on_zero_median : str
        'raise' to fail on a zero marker median, 'nan' to mark the
        affected sample column as NaN

    Examples
    --------
    >>> config = MarkerGeneConfig()
    >>> config.require_full_coverage = True
    >>> archaeal = MarkerGeneConfig(marker_genes=['K01869', 'K01873'])
    """

    marker_genes: List[str] = field(default_factory=lambda: list(DEFAULT_MARKER_GENES))
    require_full_coverage: bool = False
    min_marker_median: float = 0.0
    on_zero_median: str = "raise"

    def __post_init__(self):
        # Keep order, drop duplicates
        self.marker_genes = list(dict.fromkeys(self.marker_genes))
        self.validate()

    def validate(self):
        """Validate marker configuration parameters"""
        if not self.marker_genes:
            raise ValueError("marker_genes must contain at least one KO identifier")
        if self.on_zero_median not in ("raise", "nan"):
            raise ValueError("on_zero_median must be 'raise' or 'nan'")
        if self.min_marker_median < 0:
            raise ValueError("min_marker_median must be non-negative")
        return True


@dataclass
class NormalizationResult:
    """Every stage of the per-cell normalization, kept for before/after comparison."""

    raw: pd.DataFrame
    length_normalized: pd.DataFrame
    per_cell: pd.DataFrame
    marker_medians: pd.Series
    missing_markers: List[str] = field(default_factory=list)


# =============================================================================
# STRUCTURE HELPERS
# =============================================================================


def _separate_sample_and_annotation_data(
    data: pd.DataFrame, sample_columns: Optional[list] = None
) -> tuple:
    """
    Separate sample and annotation data.

    Without sample_columns the data must have the standardized structure
    from create_standard_data_structure():
    - Columns 0-3: EXACTLY (reference, length, Description, KO)
    - Columns 4+: Sample columns

    With sample_columns, every other column is treated as annotation.

    Returns:
    --------
    tuple : (sample_data, annotation_data)

    Raises:
    -------
    CountMatrixFormatError: If data doesn't have the expected structure
    """
    n_annotation = len(REQUIRED_ANNOTATION_COLUMNS)

    if sample_columns is None:
        actual_annotation_cols = list(data.columns[:n_annotation])
        if actual_annotation_cols != REQUIRED_ANNOTATION_COLUMNS:
            raise CountMatrixFormatError(
                f"Data does not have standardized annotation structure.\n"
                f"Expected: {REQUIRED_ANNOTATION_COLUMNS}\n"
                f"Got: {actual_annotation_cols}\n"
                f"Use create_standard_data_structure() to standardize the data first."
            )
        sample_columns = list(data.columns[n_annotation:])
    else:
        missing = [col for col in sample_columns if col not in data.columns]
        if missing:
            raise CountMatrixFormatError(f"Sample columns not found in data: {missing}")

    if not sample_columns:
        raise CountMatrixFormatError("No sample columns to normalize")

    annotation_columns = [col for col in data.columns if col not in sample_columns]

    sample_data = data[list(sample_columns)].astype(float)
    annotation_data = data[annotation_columns].copy()

    return sample_data, annotation_data


def _reassemble(
    annotation_data: pd.DataFrame, sample_data: pd.DataFrame, column_order: List[str]
) -> pd.DataFrame:
    """Combine annotation and sample columns back into the input column order."""
    result = pd.concat([annotation_data, sample_data], axis=1)
    return result[list(column_order)]


def get_normalization_characteristics() -> Dict[str, Dict[str, Any]]:
    """
    Get characteristics of each normalization stage.

    Returns:
    --------
    Dict[str, Dict[str, Any]]
        Dictionary with normalization method characteristics
    """
    return {
        "length": {
            "corrects_gene_length": True,
            "corrects_depth": False,
            "per_cell": False,
            "description": "Gene length normalization - counts per base of gene length",
        },
        "depth": {
            "corrects_gene_length": False,
            "corrects_depth": True,
            "per_cell": False,
            "description": "Sequencing depth normalization - counts per million reads",
        },
        "marker": {
            "corrects_gene_length": False,
            "corrects_depth": True,
            "per_cell": True,
            "description": "Marker gene normalization - abundance per cell (single-copy marker median)",
        },
        "per_cell": {
            "corrects_gene_length": True,
            "corrects_depth": True,
            "per_cell": True,
            "description": "Length and marker gene normalization - gene copies per cell",
        },
        "none": {
            "corrects_gene_length": False,
            "corrects_depth": False,
            "per_cell": False,
            "description": "No normalization applied",
        },
    }


def describe_normalization(normalization_method: str) -> str:
    """Return a human-readable description of a normalization stage."""
    characteristics = get_normalization_characteristics()
    method_lower = normalization_method.lower().replace("-", "_")
    if method_lower in characteristics:
        return characteristics[method_lower]["description"]
    return f"{normalization_method} normalization"


# =============================================================================
# GENE LENGTH NORMALIZATION
# =============================================================================


def repair_missing_lengths(data: pd.DataFrame) -> pd.DataFrame:
    """
    Replace unknown (negative) gene lengths with the median of the positive lengths.

    The median is computed once over every strictly positive length in the
    table. A table without negative lengths is returned unchanged (as a copy).

    Parameters:
    -----------
    data : pd.DataFrame
        Any table with a 'length' column

    Returns:
    --------
    pd.DataFrame : Copy of the data with repaired lengths

    Raises:
    -------
    NormalizationError: If lengths need repair but no positive length exists
    """
    if "length" not in data.columns:
        raise CountMatrixFormatError("Data has no 'length' column")

    result = data.copy()
    lengths = pd.to_numeric(result["length"], errors="coerce")
    unknown = lengths < 0

    if not unknown.any():
        return result

    positive_lengths = lengths[lengths > 0]
    if positive_lengths.empty:
        raise NormalizationError(
            "Cannot repair unknown gene lengths: no gene has a positive length, "
            "so the median gene length is undefined"
        )

    median_length = positive_lengths.median()
    result["length"] = lengths.where(~unknown, median_length)

    print(
        f"  Replaced {int(unknown.sum())} unknown lengths with median gene length {median_length:g}"
    )

    return result


def length_normalize(
    data: pd.DataFrame, sample_columns: Optional[list] = None
) -> pd.DataFrame:
    """
    Gene length normalization - divide each gene's counts by its length.

    Unknown lengths (negative, -1 by convention) are first replaced with the
    median positive length. reference, Description and KO are untouched.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix with a 'length' column
    sample_columns : Optional[list]
        List of sample column names. If None, uses columns 4+ of the standardized structure

    Returns:
    --------
    pd.DataFrame : Length normalized data with same structure as input
    """

    print("Applying gene length normalization...")

    sample_data, annotation_data = _separate_sample_and_annotation_data(
        data, sample_columns
    )

    repaired_annotation = repair_missing_lengths(annotation_data)
    lengths = repaired_annotation["length"].astype(float)

    invalid = ~(lengths > 0)
    if invalid.any():
        raise NormalizationError(
            f"{int(invalid.sum())} genes have a zero or missing length; "
            f"length normalization is undefined for them"
        )

    normalized_sample_data = sample_data.div(lengths, axis=0)

    result = _reassemble(repaired_annotation, normalized_sample_data, data.columns)

    print(f"Length normalization completed for {len(sample_data.columns)} samples")

    return result


# =============================================================================
# SEQUENCING DEPTH NORMALIZATION
# =============================================================================


def read_counts_from_metadata(
    metadata: pd.DataFrame,
    sample_column: str = "sample_metag",
    nreads_column: str = "sample_metag_nreads",
) -> pd.Series:
    """Build a sample -> number of reads mapping from the metadata table."""
    for col in (sample_column, nreads_column):
        if col not in metadata.columns:
            raise ValueError(f"Column '{col}' not found in metadata")

    read_counts = metadata[[sample_column, nreads_column]].dropna()
    read_counts = read_counts.drop_duplicates(subset=sample_column)
    return pd.Series(
        read_counts[nreads_column].astype(float).values,
        index=read_counts[sample_column].values,
        name=nreads_column,
    )


def depth_normalize(
    data: pd.DataFrame,
    read_counts: Union[pd.Series, Mapping[str, float]],
    scale: float = 1e6,
    sample_columns: Optional[list] = None,
) -> pd.DataFrame:
    """
    Sequencing depth normalization - divide by total reads, multiply by scale.

    This corrects for sequencing depth only. It does not correct for genome
    size or community composition; use marker_gene_normalize() for that.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix (raw or length normalized)
    read_counts : pd.Series or mapping
        Total number of reads (inserts) per sample
    scale : float
        Multiplier after division (default: per million reads)
    sample_columns : Optional[list]
        List of sample column names

    Returns:
    --------
    pd.DataFrame : Depth normalized data with same structure as input
    """

    print("Applying sequencing depth normalization...")

    sample_data, annotation_data = _separate_sample_and_annotation_data(
        data, sample_columns
    )

    read_counts = pd.Series(read_counts, dtype=float)

    missing = [col for col in sample_data.columns if col not in read_counts.index]
    if missing:
        raise NormalizationError(f"No read count available for samples: {missing}")

    depths = read_counts.reindex(sample_data.columns)
    non_positive = depths[~(depths > 0)]
    if not non_positive.empty:
        raise NormalizationError(
            f"Sequencing depth must be positive. Invalid samples: {list(non_positive.index)}"
        )

    normalized_sample_data = sample_data.div(depths, axis=1) * scale

    result = _reassemble(annotation_data, normalized_sample_data, data.columns)

    print(f"Depth normalization completed for {len(sample_data.columns)} samples (scale {scale:g})")

    return result


# =============================================================================
# MARKER GENE (PER-CELL) NORMALIZATION
# =============================================================================


def find_missing_markers(
    data: pd.DataFrame, config: Optional[MarkerGeneConfig] = None, ko_column: str = "KO"
) -> List[str]:
    """Return the configured marker KOs that do not occur in the data."""
    config = config or MarkerGeneConfig()
    present = set(data[ko_column].dropna())
    return [ko for ko in config.marker_genes if ko not in present]


def calculate_marker_abundances(
    data: pd.DataFrame,
    config: Optional[MarkerGeneConfig] = None,
    sample_columns: Optional[list] = None,
) -> pd.DataFrame:
    """
    Sum abundances per marker KO.

    A marker KO may be annotated on several rows; the rows are summed so that
    each marker contributes exactly one value per sample.

    Parameters:
    -----------
    data : pd.DataFrame
        Count matrix or length normalized profile
    config : MarkerGeneConfig, optional
        Marker gene configuration (defaults to the 10 universal markers)
    sample_columns : Optional[list]
        List of sample column names

    Returns:
    --------
    pd.DataFrame : Marker KO x sample table of summed abundances

    Raises:
    -------
    MarkerGeneError: If no marker is present, or coverage is incomplete and
        full coverage is required
    """
    config = config or MarkerGeneConfig()

    sample_data, annotation_data = _separate_sample_and_annotation_data(
        data, sample_columns
    )
    if "KO" not in annotation_data.columns:
        raise CountMatrixFormatError("Data has no 'KO' column; cannot locate marker genes")

    missing_markers = find_missing_markers(annotation_data, config)
    n_markers = len(config.marker_genes)

    if len(missing_markers) == n_markers:
        raise MarkerGeneError(
            f"None of the {n_markers} marker genes is present in the data; "
            f"the marker median is undefined. Markers: {config.marker_genes}"
        )

    if missing_markers:
        if config.require_full_coverage:
            raise MarkerGeneError(
                f"Marker genes missing from the data: {missing_markers}. "
                f"Full marker coverage is required by the configuration."
            )
        print(
            f"Warning: {len(missing_markers)}/{n_markers} marker genes not found "
            f"({missing_markers}); using the median of the "
            f"{n_markers - len(missing_markers)} markers present"
        )

    is_marker = annotation_data["KO"].isin(config.marker_genes)
    marker_abundances = (
        sample_data[is_marker]
        .groupby(annotation_data.loc[is_marker, "KO"])
        .sum(min_count=1)
    )
    marker_abundances.index.name = "KO"

    return marker_abundances


def calculate_marker_medians(
    data: pd.DataFrame,
    config: Optional[MarkerGeneConfig] = None,
    sample_columns: Optional[list] = None,
) -> pd.Series:
    """
    Per-sample median of the summed marker gene abundances.

    The marker median is a proxy for sequencing depth times number of cells.

    Parameters:
    -----------
    data : pd.DataFrame
        Length normalized profile
    config : MarkerGeneConfig, optional
        Marker gene configuration
    sample_columns : Optional[list]
        List of sample column names

    Returns:
    --------
    pd.Series : Marker median indexed by sample
    """
    marker_abundances = calculate_marker_abundances(data, config, sample_columns)
    marker_medians = marker_abundances.median(axis=0)
    marker_medians.name = "marker_median"
    return marker_medians


def _handle_undefined_marker_medians(
    bad_samples: List[str], config: MarkerGeneConfig, reason: str
) -> None:
    """Raise, or warn that the samples' per-cell abundances become NaN."""
    if config.on_zero_median == "raise":
        raise MarkerGeneError(
            f"Marker median is {reason} for samples {bad_samples}; "
            f"per-cell abundances would be infinite"
        )
    print(
        f"Warning: marker median is {reason} for {len(bad_samples)} samples "
        f"({bad_samples}); their per-cell abundances are set to NaN"
    )


def marker_gene_normalize(
    data: pd.DataFrame,
    config: Optional[MarkerGeneConfig] = None,
    sample_columns: Optional[list] = None,
    marker_medians: Optional[pd.Series] = None,
) -> pd.DataFrame:
    """
    Per-cell normalization - divide each sample by its marker gene median.

    Marker genes are present at one copy per genome, so dividing by their
    median abundance corrects for sequencing depth and genome size at once.

    Parameters:
    -----------
    data : pd.DataFrame
        Length normalized profile
    config : MarkerGeneConfig, optional
        Marker gene configuration
    sample_columns : Optional[list]
        List of sample column names
    marker_medians : pd.Series, optional
        Precomputed marker medians (from calculate_marker_medians)

    Returns:
    --------
    pd.DataFrame : Per-cell normalized data with same structure as input

    Raises:
    -------
    MarkerGeneError: If a sample's marker median is zero or undefined and
        config.on_zero_median is 'raise'
    """
    config = config or MarkerGeneConfig()

    print("Applying marker gene normalization...")

    sample_data, annotation_data = _separate_sample_and_annotation_data(
        data, sample_columns
    )

    if marker_medians is None:
        marker_medians = calculate_marker_medians(data, config, sample_columns)
    marker_medians = marker_medians.reindex(sample_data.columns)

    undefined = marker_medians.isna() | (marker_medians <= config.min_marker_median)
    if undefined.any():
        _handle_undefined_marker_medians(
            list(marker_medians.index[undefined]), config, "zero or undefined"
        )
        marker_medians = marker_medians.where(~undefined, np.nan)

    with np.errstate(over="ignore", divide="ignore"):
        normalized_sample_data = sample_data.div(marker_medians, axis=1)

    # A positive median small enough to overflow the division is as undefined as zero
    overflowed = (np.isfinite(sample_data) & ~np.isfinite(normalized_sample_data)).any(axis=0)
    overflowed &= marker_medians.notna()
    if overflowed.any():
        bad_samples = list(overflowed.index[overflowed])
        _handle_undefined_marker_medians(bad_samples, config, "too close to zero")
        normalized_sample_data[bad_samples] = np.nan

    result = _reassemble(annotation_data, normalized_sample_data, data.columns)

    print(f"Marker gene normalization completed for {len(sample_data.columns)} samples")

    return result


def run_normalization_pipeline(
    data: pd.DataFrame,
    config: Optional[MarkerGeneConfig] = None,
    sample_columns: Optional[list] = None,
) -> NormalizationResult:
    """
    Length normalization followed by marker gene normalization.

    Parameters:
    -----------
    data : pd.DataFrame
        Raw count matrix in standardized structure
    config : MarkerGeneConfig, optional
        Marker gene configuration
    sample_columns : Optional[list]
        List of sample column names

    Returns:
    --------
    NormalizationResult : raw, length normalized and per-cell tables plus the marker medians
    """
    config = config or MarkerGeneConfig()

    print("=== PER-CELL NORMALIZATION ===\n")

    length_normalized = length_normalize(data, sample_columns)
    missing_markers = find_missing_markers(length_normalized, config)
    marker_medians = calculate_marker_medians(length_normalized, config, sample_columns)
    per_cell = marker_gene_normalize(
        length_normalized, config, sample_columns, marker_medians=marker_medians
    )

    print("\n✓ Per-cell normalization complete")

    return NormalizationResult(
        raw=data.copy(),
        length_normalized=length_normalized,
        per_cell=per_cell,
        marker_medians=marker_medians,
        missing_markers=missing_markers,
    )


# =============================================================================
# DIAGNOSTICS
# =============================================================================


def calculate_normalization_stats(
    original_data: pd.DataFrame,
    normalized_data: pd.DataFrame,
    sample_columns: List[str],
) -> Dict[str, float]:
    """
    Calculate statistics to assess normalization effectiveness.

    Parameters:
    -----------
    original_data : pd.DataFrame
        Data before normalization
    normalized_data : pd.DataFrame
        Data after normalization
    sample_columns : List[str]
        Sample column names

    Returns:
    --------
    Dict[str, float] : Spread of log2 sample medians before and after normalization
    """

    log2_original = np.log2(original_data[sample_columns].replace(0, np.nan))
    log2_normalized = np.log2(normalized_data[sample_columns].replace(0, np.nan))

    original_medians = log2_original.median(axis=0)
    normalized_medians = log2_normalized.median(axis=0)

    stats = {
        "original_median_range": original_medians.max() - original_medians.min(),
        "normalized_median_range": normalized_medians.max() - normalized_medians.min(),
        "n_samples": len(sample_columns),
    }

    if stats["original_median_range"] > 0:
        stats["median_range_reduction"] = 1 - (
            stats["normalized_median_range"] / stats["original_median_range"]
        )
    else:
        stats["median_range_reduction"] = 0.0

    return stats
