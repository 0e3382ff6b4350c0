"""
Tests for metaomics_toolkit.data_import module
"""

import pytest
import pandas as pd
import os
import tempfile

from metaomics_toolkit.data_import import (
    load_count_matrix,
    load_sample_metadata,
    load_metaomics_data,
    identify_sample_columns,
    split_by_omic,
    merge_count_matrices,
)
from metaomics_toolkit.validation import CountMatrixFormatError


class TestLoadCountMatrix:
    """Test count matrix loading"""

    def test_load_compressed_tsv(self, temp_data_files, count_matrix):
        """Test loading a gzipped count matrix"""
        count_file, _ = temp_data_files

        result = load_count_matrix(count_file)

        assert result.shape == count_matrix.shape
        assert list(result.columns) == list(count_matrix.columns)
        assert result["length"].tolist() == count_matrix["length"].tolist()
        assert result["MG_01"].tolist() == count_matrix["MG_01"].tolist()

    def test_file_not_found(self):
        """Test that a missing file raises FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            load_count_matrix("nonexistent_counts.tsv.gz")

    def test_missing_annotation_columns(self):
        """Test that a table without the annotation columns is rejected"""
        with tempfile.TemporaryDirectory() as temp_dir:
            count_file = os.path.join(temp_dir, "counts.tsv")
            pd.DataFrame({"gene": ["g1"], "S1": [1]}).to_csv(count_file, sep="\t", index=False)

            with pytest.raises(CountMatrixFormatError):
                load_count_matrix(count_file)


class TestLoadSampleMetadata:
    """Test metadata loading"""

    def test_load_metadata(self, temp_data_files, sample_metadata):
        """Test loading the metadata CSV"""
        _, metadata_file = temp_data_files

        result = load_sample_metadata(metadata_file)

        assert result["sample_metag"].tolist() == sample_metadata["sample_metag"].tolist()
        assert "Temperature" in result.columns

    def test_missing_pairing_column(self):
        """Test that metadata without the pairing columns is rejected"""
        with tempfile.TemporaryDirectory() as temp_dir:
            metadata_file = os.path.join(temp_dir, "metadata.csv")
            pd.DataFrame({"sample_metag": ["MG_01"], "Temperature": [4.0]}).to_csv(
                metadata_file, index=False
            )

            with pytest.raises(ValueError, match="sample_metat"):
                load_sample_metadata(metadata_file)

    def test_file_not_found(self):
        """Test that a missing file raises FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            load_sample_metadata("nonexistent_metadata.csv")


class TestLoadMetaomicsData:
    """Test the combined loader"""

    def test_load_both_files(self, temp_data_files, sample_columns):
        """Test loading count matrix and metadata together"""
        count_file, metadata_file = temp_data_files

        count_matrix, metadata = load_metaomics_data(count_file, metadata_file)

        assert identify_sample_columns(count_matrix) == sample_columns
        assert len(metadata) == 6
        # The unannotated row survives loading with a missing KO
        assert count_matrix["KO"].isna().sum() == 1

    def test_missing_file(self, temp_data_files):
        """Test that a missing file is reported before loading"""
        count_file, _ = temp_data_files

        with pytest.raises(FileNotFoundError):
            load_metaomics_data(count_file, "nonexistent_metadata.csv")


class TestSampleColumns:
    """Test sample column helpers"""

    def test_identify_sample_columns(self, count_matrix, sample_columns):
        """Test that every non-annotation column is a sample"""
        assert identify_sample_columns(count_matrix) == sample_columns

    def test_no_sample_columns(self):
        """Test that an annotation-only table is rejected"""
        data = pd.DataFrame(columns=["reference", "length", "Description", "KO"])

        with pytest.raises(CountMatrixFormatError):
            identify_sample_columns(data)

    def test_split_by_omic(self, count_matrix, sample_metadata):
        """Test splitting samples into metagenomes and metatranscriptomes"""
        metag_samples, metat_samples = split_by_omic(count_matrix, sample_metadata)

        assert metag_samples == [f"MG_{i:02d}" for i in range(1, 7)]
        assert metat_samples == [f"MT_{i:02d}" for i in range(1, 7)]


class TestMergeCountMatrices:
    """Test merging separate metagenomic and metatranscriptomic matrices"""

    def test_merge(self, count_matrix):
        """Test that the matrices are merged on the annotation columns"""
        annotation = ["reference", "length", "Description", "KO"]
        gene_matrix = count_matrix[annotation + ["MG_01", "MG_02"]]
        transcript_matrix = count_matrix[annotation + ["MT_01"]].iloc[:10]

        merged = merge_count_matrices(gene_matrix, transcript_matrix)

        assert list(merged.columns) == annotation + ["MG_01", "MG_02", "MT_01"]
        assert len(merged) == len(count_matrix)

        merged_by_ref = merged.set_index("reference")
        transcripts = transcript_matrix.set_index("reference")["MT_01"]
        absent = count_matrix["reference"].iloc[10:]

        # References absent from the metatranscriptome were not observed there
        assert merged_by_ref.loc[absent, "MT_01"].eq(0).all()
        assert merged_by_ref.loc[transcripts.index, "MT_01"].tolist() == transcripts.tolist()

    def test_overlapping_samples_rejected(self, count_matrix):
        """Test that a sample column in both matrices is an error"""
        with pytest.raises(CountMatrixFormatError):
            merge_count_matrices(count_matrix, count_matrix)
