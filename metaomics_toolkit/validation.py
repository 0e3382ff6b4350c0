"""
Data Validation Module for Metaomics Toolkit

Functions for validating count matrix structure and metadata/count matrix
consistency, with interpretable error messages when samples or pairs are missing.
"""

import pandas as pd
from typing import Dict, List, Optional


# Annotation columns every count matrix must carry, in this order
REQUIRED_ANNOTATION_COLUMNS = ["reference", "length", "Description", "KO"]


class CountMatrixFormatError(ValueError):
    """Count matrix is missing annotation columns or sample columns."""
    def __init__(self, message):
        super().__init__(message)


class SampleMatchingError(Exception):
    """Custom exception for sample matching issues."""
    def __init__(self, message):
        super().__init__(message)


class NormalizationError(Exception):
    """A normalization statistic is undefined for the given data."""
    def __init__(self, message):
        super().__init__(message)


class MarkerGeneError(NormalizationError):
    """Marker gene coverage or marker median makes per-cell normalization undefined."""


def validate_count_matrix(data: pd.DataFrame) -> List[str]:
    """
    Check that a count matrix has the annotation columns and at least one sample.

    Parameters:
    -----------
    data : pd.DataFrame
        Gene/transcript count matrix

    Returns:
    --------
    List[str] : Sample column names (every non-annotation column)

    Raises:
    -------
    CountMatrixFormatError: If annotation columns or sample columns are missing
    """
    missing_cols = [col for col in REQUIRED_ANNOTATION_COLUMNS if col not in data.columns]
    if missing_cols:
        raise CountMatrixFormatError(
            f"Count matrix is missing required annotation columns: {missing_cols}.\n"
            f"Expected columns: {REQUIRED_ANNOTATION_COLUMNS} followed by one column per sample.\n"
            f"Got: {list(data.columns)}"
        )

    sample_columns = [col for col in data.columns if col not in REQUIRED_ANNOTATION_COLUMNS]
    if not sample_columns:
        raise CountMatrixFormatError(
            "Count matrix has no sample columns after the annotation columns"
        )

    return sample_columns


def validate_metadata_data_consistency(
    metadata: pd.DataFrame,
    count_columns: List[str],
    metag_column: str = "sample_metag",
    metat_column: str = "sample_metat",
    verbose: bool = True
) -> Dict:
    """
    Validate consistency between the sample pairing table and the count matrix.

    Parameters:
    -----------
    metadata : pd.DataFrame
        Sample metadata with one row per metagenomic/metatranscriptomic pair
    count_columns : List[str]
        Column names from the count matrix
    metag_column : str
        Metadata column holding the metagenomic sample identifier
    metat_column : str
        Metadata column holding the metatranscriptomic sample identifier
    verbose : bool, default True
        Whether to print detailed validation results

    Returns:
    --------
    Dict containing validation results and diagnostic information.
    A pair with either side absent from the count matrix is reported as a
    warning; it will be excluded from the combined expression table.
    """

    results = {
        'is_valid': True,
        'errors': [],
        'warnings': [],
        'diagnostics': {}
    }

    if verbose:
        print("METADATA/COUNT MATRIX CONSISTENCY VALIDATION")
        print("=" * 50)

    for col in (metag_column, metat_column):
        if col not in metadata.columns:
            results['errors'].append(f"Pairing column '{col}' not found in metadata")
            results['is_valid'] = False

    if not results['is_valid']:
        if verbose:
            print("\nVALIDATION FAILED")
            for error in results['errors']:
                print(f"  ERROR: {error}")
        return results

    available = set(count_columns)
    pairs = metadata[[metag_column, metat_column]].dropna()

    complete_pairs = []
    missing_metag = []
    missing_metat = []

    for metag, metat in pairs.itertuples(index=False):
        metag_found = metag in available
        metat_found = metat in available
        if metag_found and metat_found:
            complete_pairs.append((metag, metat))
        if not metag_found:
            missing_metag.append(metag)
        if not metat_found:
            missing_metat.append(metat)

    # The metag <-> metat mapping must be one-to-one
    duplicated_metag = sorted(pairs[metag_column][pairs[metag_column].duplicated()].unique().tolist())
    duplicated_metat = sorted(pairs[metat_column][pairs[metat_column].duplicated()].unique().tolist())

    incomplete_rows = len(metadata) - len(pairs)

    if missing_metag:
        results['warnings'].append(
            f"Found {len(missing_metag)} metagenomic samples in metadata with no column in the "
            f"count matrix: {missing_metag[:5]}{'...' if len(missing_metag) > 5 else ''}"
        )
    if missing_metat:
        results['warnings'].append(
            f"Found {len(missing_metat)} metatranscriptomic samples in metadata with no column in the "
            f"count matrix: {missing_metat[:5]}{'...' if len(missing_metat) > 5 else ''}"
        )
    if incomplete_rows:
        results['warnings'].append(
            f"{incomplete_rows} metadata rows lack one side of the pairing and will be ignored"
        )
    if duplicated_metag or duplicated_metat:
        results['errors'].append(
            f"Sample pairing is not one-to-one. Duplicated metagenomic samples: {duplicated_metag}; "
            f"duplicated metatranscriptomic samples: {duplicated_metat}"
        )
        results['is_valid'] = False
    if not complete_pairs:
        results['errors'].append("No sample pair has both sides present in the count matrix")
        results['is_valid'] = False

    paired_samples = set(pairs[metag_column]) | set(pairs[metat_column])
    unpaired_columns = [
        col for col in count_columns
        if col not in paired_samples and col not in REQUIRED_ANNOTATION_COLUMNS
    ]

    results['diagnostics'] = {
        'total_pairs_in_metadata': len(pairs),
        'complete_pairs': len(complete_pairs),
        'pairs_missing_metag': len(missing_metag),
        'pairs_missing_metat': len(missing_metat),
        'complete_pair_list': complete_pairs,
        'missing_metag_samples': missing_metag,
        'missing_metat_samples': missing_metat,
        'duplicated_metag_samples': duplicated_metag,
        'duplicated_metat_samples': duplicated_metat,
        'unpaired_count_columns': unpaired_columns,
    }

    if verbose:
        diag = results['diagnostics']
        print(f"Sample pairs in metadata: {diag['total_pairs_in_metadata']}")
        print(f"  Complete in count matrix: {diag['complete_pairs']}")
        print(f"  Missing metagenomic side: {diag['pairs_missing_metag']}")
        print(f"  Missing metatranscriptomic side: {diag['pairs_missing_metat']}")
        if unpaired_columns:
            print(f"  Count matrix columns not in any pair: {len(unpaired_columns)}")

        for warning in results['warnings']:
            print(f"  Warning: {warning}")

        if results['errors']:
            print("\nVALIDATION FAILED")
            for error in results['errors']:
                print(f"  ERROR: {error}")
        else:
            print("\n✓ VALIDATION PASSED")

    return results


def require_consistent_pairs(
    metadata: pd.DataFrame,
    count_columns: List[str],
    metag_column: str = "sample_metag",
    metat_column: str = "sample_metat",
) -> Dict:
    """Run validation quietly and raise SampleMatchingError if it failed."""
    validation_results = validate_metadata_data_consistency(
        metadata,
        count_columns,
        metag_column=metag_column,
        metat_column=metat_column,
        verbose=False,
    )
    if not validation_results['is_valid']:
        error_summary = "\n".join(validation_results['errors'])
        raise SampleMatchingError(f"Sample pairing validation failed:\n{error_summary}")
    return validation_results


def generate_sample_matching_diagnostic_report(
    metadata: pd.DataFrame,
    count_columns: List[str],
    metag_column: str = "sample_metag",
    metat_column: str = "sample_metat",
    output_file: Optional[str] = None
) -> str:
    """
    Generate a detailed diagnostic report for sample pairing issues.

    Parameters:
    -----------
    metadata : pd.DataFrame
        Sample metadata
    count_columns : List[str]
        Column names from the count matrix
    metag_column, metat_column : str
        Pairing columns in the metadata
    output_file : str, optional
        File to save the report to

    Returns:
    --------
    str : Diagnostic report text
    """

    validation_results = validate_metadata_data_consistency(
        metadata, count_columns, metag_column, metat_column, verbose=False
    )

    diag = validation_results['diagnostics']

    report_lines = [
        "SAMPLE PAIRING DIAGNOSTIC REPORT",
        "=" * 60,
        "",
        "SUMMARY:",
        f"  Validation status: {'PASSED' if validation_results['is_valid'] else 'FAILED'}",
    ]

    if diag:
        report_lines.extend([
            f"  Sample pairs in metadata: {diag['total_pairs_in_metadata']}",
            f"  Complete pairs: {diag['complete_pairs']}",
            "",
        ])

        if diag['missing_metag_samples']:
            report_lines.append("METAGENOMIC SAMPLES MISSING FROM COUNT MATRIX:")
            for sample in diag['missing_metag_samples']:
                report_lines.append(f"  - {sample}")
            report_lines.append("")

        if diag['missing_metat_samples']:
            report_lines.append("METATRANSCRIPTOMIC SAMPLES MISSING FROM COUNT MATRIX:")
            for sample in diag['missing_metat_samples']:
                report_lines.append(f"  - {sample}")
            report_lines.append("")

        if diag['unpaired_count_columns']:
            report_lines.append("COUNT MATRIX COLUMNS NOT USED BY ANY PAIR:")
            for col in diag['unpaired_count_columns'][:20]:
                report_lines.append(f"  - {col}")
            if len(diag['unpaired_count_columns']) > 20:
                report_lines.append(f"  ... and {len(diag['unpaired_count_columns']) - 20} more")
            report_lines.append("")

    if validation_results['errors']:
        report_lines.append("ERRORS:")
        for error in validation_results['errors']:
            report_lines.append(f"  - {error}")
        report_lines.append("")

    if validation_results['warnings']:
        report_lines.append("WARNINGS:")
        for warning in validation_results['warnings']:
            report_lines.append(f"  - {warning}")
        report_lines.append("")

    report_lines.extend([
        "NOTES:",
        "  Pairs with either side missing are excluded from the expression table,",
        "  they are never filled with zeros.",
    ])

    report_text = "\n".join(report_lines)

    if output_file:
        with open(output_file, 'w') as f:
            f.write(report_text)
        print(f"Diagnostic report saved to: {output_file}")

    return report_text
