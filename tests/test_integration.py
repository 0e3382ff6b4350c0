"""
Integration tests - the full workflow from files on disk to exported results
"""

import os
import tempfile

import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")

import metaomics_toolkit as mtk  # noqa: E402


class TestFullWorkflow:
    """Load, validate, normalize, combine, test and export"""

    def test_workflow(self, temp_data_files, statistical_config):
        """Test that every stage hands the next a usable table"""
        count_file, metadata_file = temp_data_files

        counts, metadata = mtk.load_metaomics_data(count_file, metadata_file)
        sample_columns = mtk.identify_sample_columns(counts)

        validation = mtk.require_consistent_pairs(metadata, list(counts.columns))
        assert validation["diagnostics"]["complete_pairs"] == 6

        result = mtk.run_normalization_pipeline(counts, mtk.MarkerGeneConfig())
        assert list(result.per_cell.columns) == list(counts.columns)
        assert (result.length_normalized["length"] > 0).all()

        expression = mtk.combine_expression(result.per_cell, metadata)
        assert expression["sample_pair"].nunique() == 6
        assert expression["expression_finite"].all()

        # Expression is unaffected by the per-sample marker scaling of each side
        k1 = expression[(expression["KO"] == "K00001") & (expression["sample_metag"] == "MG_01")]
        raw_gene = counts.loc[counts["KO"] == "K00001", "MG_01"] / counts.loc[
            counts["KO"] == "K00001", "length"
        ]
        raw_transcript = counts.loc[counts["KO"] == "K00001", "MT_01"] / counts.loc[
            counts["KO"] == "K00001", "length"
        ]
        marker_ratio = result.marker_medians["MG_01"] / result.marker_medians["MT_01"]
        expected = raw_transcript.sum() / raw_gene.sum() * marker_ratio
        assert np.isclose(k1["expression"].iloc[0], expected)

        correlations = mtk.correlate_expression_with_covariate(
            expression, metadata, statistical_config
        )
        assert set(correlations["KO"]) == set(expression["KO"])

        summary = mtk.summarize_expression_by_ko(expression)
        assert (summary["n_pairs"] == 6).all()

        with tempfile.TemporaryDirectory() as temp_dir:
            exported = mtk.export_complete_analysis(
                normalized_data=result.per_cell,
                expression_df=expression,
                sample_metadata=metadata,
                config_dict=mtk.create_config_dict_from_notebook_vars(
                    count_file=count_file, metadata_file=metadata_file
                ),
                statistical_results=correlations,
                marker_medians=result.marker_medians,
                output_prefix=os.path.join(temp_dir, "tara"),
            )

            reloaded = pd.read_csv(exported["expression"], sep="\t")
            assert len(reloaded) == len(expression)
            assert "statistical_results" in exported

    def test_separate_matrices(self, count_matrix, sample_metadata):
        """Test the workflow with metagenome and metatranscriptome in separate files"""
        annotation = ["reference", "length", "Description", "KO"]
        metag_samples, metat_samples = mtk.split_by_omic(count_matrix, sample_metadata)

        gene_matrix = count_matrix[annotation + metag_samples]
        transcript_matrix = count_matrix[annotation + metat_samples]

        gene_profile = mtk.run_normalization_pipeline(gene_matrix).per_cell
        transcript_profile = mtk.run_normalization_pipeline(transcript_matrix).per_cell

        separate = mtk.combine_expression(
            gene_profile, sample_metadata, transcript_profile=transcript_profile
        )
        joint = mtk.combine_expression(
            mtk.run_normalization_pipeline(count_matrix).per_cell, sample_metadata
        )

        pd.testing.assert_frame_equal(separate, joint)
