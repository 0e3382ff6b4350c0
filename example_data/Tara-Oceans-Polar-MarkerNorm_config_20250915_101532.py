# =============================================================================
# METAOMICS EXPRESSION ANALYSIS CONFIGURATION
# Generated: 2025-09-15 10:15:32
# Analysis: Per-cell gene expression vs temperature, polar and non-polar stations
# =============================================================================

# =============================================================================
# 1. INPUT FILES AND PATHS
# =============================================================================
count_file = 'OM-RGC_v2_gene_profile_metaG_metaT.tsv.gz'
transcript_count_file = ''
metadata_file = 'Salazar_et_al_2019_Suppl_Info.csv'

# =============================================================================
# 2. SAMPLE PAIRING
# =============================================================================
metag_column = 'sample_metag'
metat_column = 'sample_metat'
pair_column = 'sample_pair'

# =============================================================================
# 3. DATA FILTERING PARAMETERS
# =============================================================================
min_detection_rate = 0.0

# =============================================================================
# 4. NORMALIZATION STRATEGY
# =============================================================================
marker_genes = ['K06942', 'K01889', 'K01887', 'K01875', 'K01883', 'K01869', 'K01873', 'K01409', 'K03106', 'K03110']
require_full_coverage = False
min_marker_median = 0.0
on_zero_median = 'raise'

# =============================================================================
# 5. EXPRESSION SETTINGS
# =============================================================================
drop_non_finite = False

# =============================================================================
# 6. STATISTICAL ANALYSIS STRATEGY
# =============================================================================
covariate_column = 'Temperature'
correlation_method = 'spearman'
group_column = 'polar'
group_labels = ['non polar', 'polar']
min_pairs = 10
correction_method = 'fdr_bh'
p_value_threshold = 0.05

# =============================================================================
# 7. OUTPUT AND EXPORT SETTINGS
# =============================================================================
export_results = True
output_prefix = 'Tara-Oceans-Polar-MarkerNorm'

# =============================================================================
# COMPUTED VALUES (for reference)
# =============================================================================
# n_kos: 9581
# n_sample_pairs: 187
# n_non_finite_expression: 24113
