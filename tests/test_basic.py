"""
Basic tests to verify the package imports and its defaults are in place
"""

import pandas as pd
import numpy as np

import metaomics_toolkit as mtk


def test_one_pair_end_to_end():
    """Test the four stages on a minimal one-pair profile"""
    data = pd.DataFrame(
        {
            "reference": ["m1", "m2", "g1"],
            "length": [100.0, 100.0, -1.0],
            "Description": ["", "", ""],
            "KO": ["M1", "M2", "K1"],
            "MG": [100.0, 300.0, 200.0],
            "MT": [50.0, 150.0, 600.0],
        }
    )
    metadata = pd.DataFrame({"sample_metag": ["MG"], "sample_metat": ["MT"]})
    config = mtk.MarkerGeneConfig(marker_genes=["M1", "M2"])

    result = mtk.run_normalization_pipeline(data, config)
    expression = mtk.combine_expression(result.per_cell, metadata)

    # Unknown length becomes the median length (100); marker medians are 2.0 and 1.0
    k1 = expression[expression["KO"] == "K1"].iloc[0]
    assert k1["gene_abundance"] == 1.0
    assert k1["transcript_abundance"] == 6.0
    assert k1["expression"] == 6.0


def test_zero_gene_abundance_is_flagged_not_raised():
    """Test that expression over a zero gene abundance is flagged as non-finite"""
    profile = pd.DataFrame(
        {
            "reference": ["g1", "g2"],
            "length": [1.0, 1.0],
            "Description": ["", ""],
            "KO": ["K1", "K2"],
            "MG": [0.0, 0.0],
            "MT": [3.0, 0.0],
        }
    )
    metadata = pd.DataFrame({"sample_metag": ["MG"], "sample_metat": ["MT"]})

    expression = mtk.combine_expression(profile, metadata).set_index("KO")

    assert np.isinf(expression.loc["K1", "expression"])
    assert np.isnan(expression.loc["K2", "expression"])
    assert not expression["expression_finite"].any()


def test_metaomics_toolkit_import():
    """Test that we can import the metaomics toolkit"""
    import metaomics_toolkit

    assert hasattr(metaomics_toolkit, "__version__")
    for name in metaomics_toolkit.__all__:
        assert hasattr(metaomics_toolkit, name), name


def test_basic_marker_config():
    """Test that we can import and create a marker gene configuration"""
    from metaomics_toolkit.normalization import MarkerGeneConfig

    config = MarkerGeneConfig()

    assert len(config.marker_genes) == 10
    assert "K06942" in config.marker_genes
    assert config.on_zero_median == "raise"


def test_basic_statistical_config():
    """Test that we can import and create a statistical configuration"""
    from metaomics_toolkit.statistical_analysis import StatisticalConfig

    config = StatisticalConfig()

    assert config.analysis_type == "correlation"
    assert config.p_value_threshold == 0.05
