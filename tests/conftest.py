"""
Pytest configuration and fixtures for metaomics_toolkit tests
"""

import pytest
import pandas as pd
import numpy as np
import tempfile
import os
import shutil

from metaomics_toolkit.normalization import DEFAULT_MARKER_GENES, MarkerGeneConfig
from metaomics_toolkit.statistical_analysis import StatisticalConfig


METAG_SAMPLES = [f"MG_{i:02d}" for i in range(1, 7)]
METAT_SAMPLES = [f"MT_{i:02d}" for i in range(1, 7)]


@pytest.fixture
def marker_kos():
    """The universal single-copy marker KOs"""
    return list(DEFAULT_MARKER_GENES)


@pytest.fixture
def sample_columns():
    """Sample column names for testing (6 metagenomes then 6 metatranscriptomes)"""
    return METAG_SAMPLES + METAT_SAMPLES


@pytest.fixture
def count_matrix(marker_kos, sample_columns):
    """Create a count matrix in standardized structure for testing

    17 rows:
    - 10 marker KOs, with K06942 annotated on two reference sequences
    - K00001 on two reference sequences, K00002, K00003
    - K00004 with an unknown length (-1)
    - one reference without a KO
    """
    np.random.seed(42)

    kos = marker_kos + ["K06942", "K00001", "K00001", "K00002", "K00003", "K00004", None]
    n_rows = len(kos)

    lengths = np.random.randint(300, 3000, n_rows).astype(float)
    lengths[15] = -1

    counts = np.random.randint(10, 500, size=(n_rows, len(sample_columns))).astype(float)

    df = pd.DataFrame(
        {
            # EXACTLY the 4 required annotation columns in order:
            "reference": [f"OM-RGC.v2.{i:09d}" for i in range(n_rows)],
            "length": lengths,
            "Description": [f"gene_{i}_description" for i in range(n_rows)],
            "KO": kos,
            # Sample columns:
            **{sample: counts[:, i] for i, sample in enumerate(sample_columns)},
        }
    )

    return df


@pytest.fixture
def sample_metadata():
    """Create sample metadata DataFrame (one row per metagenome/metatranscriptome pair)"""
    return pd.DataFrame(
        {
            "sample_metag": METAG_SAMPLES,
            "sample_metat": METAT_SAMPLES,
            "sample_metag_nreads": [2.0e6, 2.5e6, 3.0e6, 3.5e6, 4.0e6, 4.5e6],
            "Temperature": [-1.5, 2.0, 8.5, 15.0, 21.3, 27.8],
            "polar": ["polar", "polar", "polar", "non-polar", "non-polar", "non-polar"],
        }
    )


@pytest.fixture
def marker_config():
    """Default marker gene configuration"""
    return MarkerGeneConfig()


@pytest.fixture
def statistical_config():
    """Create sample statistical configuration"""
    config = StatisticalConfig()
    config.covariate_column = "Temperature"
    config.correlation_method = "spearman"
    config.group_column = "polar"
    config.group_labels = ["polar", "non-polar"]
    config.min_pairs = 5
    config.correction_method = "fdr_bh"
    config.p_value_threshold = 0.05
    return config


@pytest.fixture
def temp_data_files(count_matrix, sample_metadata):
    """Create temporary count matrix (gzipped TSV) and metadata (CSV) files"""
    # Create temporary directory
    temp_dir = tempfile.mkdtemp()

    count_file = os.path.join(temp_dir, "counts.tsv.gz")
    count_matrix.to_csv(count_file, sep="\t", index=False, compression="gzip")

    metadata_file = os.path.join(temp_dir, "metadata.csv")
    sample_metadata.to_csv(metadata_file, index=False)

    yield count_file, metadata_file

    # Cleanup
    shutil.rmtree(temp_dir)
