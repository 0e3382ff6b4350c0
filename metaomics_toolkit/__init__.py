"""
Metaomics Toolkit
=================

A Python library for combining metagenomic and metatranscriptomic count data
to estimate per-gene expression across environmental samples. This toolkit
provides the workflow from count matrix import through per-cell normalization,
expression estimation, statistics and visualization.

QUICK START EXAMPLE:
-------------------
    import metaomics_toolkit as mtk

    # 1. Load data
    counts, metadata = mtk.load_metaomics_data('counts.tsv.gz', 'metadata.csv')

    # 2. Normalize to abundance per cell
    result = mtk.run_normalization_pipeline(counts, mtk.MarkerGeneConfig())

    # 3. Expression = transcript abundance / gene abundance
    expression = mtk.combine_expression(result.per_cell, metadata)

    # 4. Statistics, visualization and export
    config = mtk.StatisticalConfig()
    correlations = mtk.correlate_expression_with_covariate(expression, metadata, config)
    mtk.plot_gene_vs_transcript_abundance(expression)
    mtk.export_analysis_results(result.per_cell, expression, metadata)

MODULE OVERVIEW:
===============

data_import
    Purpose: Load count matrices (TSV, optionally compressed) and sample metadata
    Key functions: load_metaomics_data(), load_count_matrix(), split_by_omic()

preprocessing
    Purpose: Standardize count matrices, assess detection, aggregate by KO
    Key functions: create_standard_data_structure(), aggregate_by_ko()

normalization
    Purpose: Gene length, sequencing depth and marker gene (per-cell) normalization
    Key functions: length_normalize(), marker_gene_normalize(), run_normalization_pipeline()

expression
    Purpose: Pair metagenomes with metatranscriptomes and compute expression
    Key functions: combine_expression(), summarize_expression_by_ko()

statistical_analysis
    Purpose: Association of expression with covariates and group comparisons
    Key functions: correlate_expression_with_covariate(), compare_expression_between_groups()

visualization
    Purpose: Normalization diagnostics and expression plots
    Key functions: plot_marker_gene_abundance(), plot_gene_vs_transcript_abundance()

validation
    Purpose: Count matrix checks, sample pairing diagnostics, exceptions
    Key functions: validate_metadata_data_consistency()

export
    Purpose: Export results and create reproducible configuration records
    Key functions: export_complete_analysis(), export_timestamped_config()

TYPICAL WORKFLOW:
================
1. mtk.load_metaomics_data() → Load count matrix and metadata
2. mtk.validate_metadata_data_consistency() → Check the sample pairing
3. mtk.length_normalize() → Counts per base of gene length
4. mtk.marker_gene_normalize() → Abundance per cell
5. mtk.combine_expression() → Expression per (KO, sample pair)
6. mtk.correlate_expression_with_covariate() → Expression vs environment
7. mtk.export_complete_analysis() → Export everything for reproducibility

ERROR HANDLING:
==============
- CountMatrixFormatError: Count matrix lacks annotation or sample columns
- SampleMatchingError: Sample pairing cannot be reconciled with the data
- NormalizationError: A normalization statistic is undefined (e.g. no positive gene length)
- MarkerGeneError: Marker genes absent, or a sample's marker median is zero
"""

# =============================================================================
# MODULE IMPORTS - Core functionality organized by analysis stage
# =============================================================================

from . import validation           # Data validation and error checking
from . import preprocessing        # Count matrix standardization and aggregation
from . import data_import          # Data loading
from . import normalization        # Normalization methods
from . import expression           # Expression estimation
from . import statistical_analysis # Statistical testing
from . import visualization        # Plotting and visualization
from . import export               # Results export and configuration management

__version__ = "1.0.0"

# =============================================================================
# CONVENIENCE IMPORTS - Most commonly used functions available at top level
# =============================================================================

# DATA LOADING
from .data_import import (
    load_metaomics_data,      # Main function: Load count matrix + metadata
    load_count_matrix,        # Load a single count matrix
    load_sample_metadata,     # Load sample metadata
    identify_sample_columns,  # Sample columns of a count matrix
    split_by_omic,            # Metagenomic vs metatranscriptomic sample columns
    merge_count_matrices,     # Merge separate metaG and metaT matrices
)

# DATA PREPROCESSING
from .preprocessing import (
    create_standard_data_structure, # Standard column order and numeric samples
    assess_data_completeness,       # Per-sample detection summary
    filter_genes_by_prevalence,     # Drop rarely detected genes
    aggregate_by_ko,                # Sum rows per orthologous group
)

# NORMALIZATION
from .normalization import (
    DEFAULT_MARKER_GENES,       # The 10 universal single-copy marker KOs
    MarkerGeneConfig,           # Configuration for per-cell normalization
    NormalizationResult,        # All normalization stages
    repair_missing_lengths,     # Unknown lengths -> median positive length
    length_normalize,           # Counts per base of gene length
    depth_normalize,            # Counts per million reads
    read_counts_from_metadata,  # Sequencing depth per sample from metadata
    calculate_marker_medians,   # Per-sample marker median
    marker_gene_normalize,      # Abundance per cell
    run_normalization_pipeline, # Length then marker normalization
    calculate_normalization_stats,
)

# EXPRESSION
from .expression import (
    ExpressionConfig,           # Column configuration for pairing
    build_sample_pairs,         # Pairing table from metadata
    combine_expression,         # Main function: expression per (KO, pair)
    filter_finite_expression,   # Drop non-finite expression values
    summarize_expression_by_ko, # Per-KO summary
    pivot_expression,           # KO x sample pair matrix
)

# STATISTICAL ANALYSIS
from .statistical_analysis import (
    StatisticalConfig,
    correlate_expression_with_covariate,
    compare_expression_between_groups,
    apply_multiple_testing_correction,
)

# DATA VALIDATION
from .validation import (
    validate_count_matrix,
    validate_metadata_data_consistency,
    require_consistent_pairs,
    generate_sample_matching_diagnostic_report,
    CountMatrixFormatError,
    SampleMatchingError,
    NormalizationError,
    MarkerGeneError,
)

# DATA EXPORT
from .export import (
    export_analysis_results,
    export_timestamped_config,
    create_config_dict_from_notebook_vars,
    export_complete_analysis,
)

# VISUALIZATION
from .visualization import (
    plot_normalization_comparison,
    plot_marker_gene_abundance,
    plot_gene_vs_transcript_abundance,
    plot_expression_vs_covariate,
)

# =============================================================================
# PUBLIC API - All functions available for import
# =============================================================================

__all__ = [
    # MODULES
    "data_import",
    "preprocessing",
    "normalization",
    "expression",
    "statistical_analysis",
    "visualization",
    "validation",
    "export",

    # DATA LOADING - Start here for any analysis
    "load_metaomics_data",
    "load_count_matrix",
    "load_sample_metadata",
    "identify_sample_columns",
    "split_by_omic",
    "merge_count_matrices",

    # PREPROCESSING
    "create_standard_data_structure",
    "assess_data_completeness",
    "filter_genes_by_prevalence",
    "aggregate_by_ko",

    # NORMALIZATION
    "DEFAULT_MARKER_GENES",
    "MarkerGeneConfig",
    "NormalizationResult",
    "repair_missing_lengths",
    "length_normalize",
    "depth_normalize",
    "read_counts_from_metadata",
    "calculate_marker_medians",
    "marker_gene_normalize",
    "run_normalization_pipeline",
    "calculate_normalization_stats",

    # EXPRESSION
    "ExpressionConfig",
    "build_sample_pairs",
    "combine_expression",
    "filter_finite_expression",
    "summarize_expression_by_ko",
    "pivot_expression",

    # STATISTICAL ANALYSIS
    "StatisticalConfig",
    "correlate_expression_with_covariate",
    "compare_expression_between_groups",
    "apply_multiple_testing_correction",

    # VALIDATION
    "validate_count_matrix",
    "validate_metadata_data_consistency",
    "require_consistent_pairs",
    "generate_sample_matching_diagnostic_report",
    "CountMatrixFormatError",
    "SampleMatchingError",
    "NormalizationError",
    "MarkerGeneError",

    # EXPORT
    "export_analysis_results",
    "export_timestamped_config",
    "create_config_dict_from_notebook_vars",
    "export_complete_analysis",

    # VISUALIZATION
    "plot_normalization_comparison",
    "plot_marker_gene_abundance",
    "plot_gene_vs_transcript_abundance",
    "plot_expression_vs_covariate",
]
