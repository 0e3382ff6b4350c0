"""
Visualization Module for Metaomics Toolkit

Functions for plotting normalization diagnostics and gene expression results.
"""

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy.ndimage import gaussian_filter1d
from typing import List, Optional, Tuple

from .expression import filter_finite_expression
from .normalization import MarkerGeneConfig, calculate_marker_abundances, describe_normalization


def _plot_smoothed_densities(ax, log_data: pd.DataFrame, sample_columns: List[str]) -> None:
    for col in sample_columns:
        data = log_data[col].replace([np.inf, -np.inf], np.nan).dropna()
        if len(data) > 1:
            counts, bins = np.histogram(data, bins=100, density=True)
            bin_centers = (bins[:-1] + bins[1:]) / 2
            smoothed_counts = gaussian_filter1d(counts, sigma=0.8)
            ax.plot(bin_centers, smoothed_counts, alpha=0.7, linewidth=1.5)


def plot_normalization_comparison(
    original_data: pd.DataFrame,
    normalized_data: pd.DataFrame,
    sample_columns: List[str],
    method: str = "per_cell",
    figsize: Tuple[int, int] = (15, 6),
):
    """
    Compare abundance distributions before and after normalization.

    Parameters:
    -----------
    original_data : pd.DataFrame
        Data before normalization
    normalized_data : pd.DataFrame
        Data after normalization
    sample_columns : List[str]
        Sample column names
    method : str
        Normalization stage ('length', 'depth', 'marker', 'per_cell')
    figsize : Tuple[int, int]
        Figure size (width, height)

    Returns:
    --------
    matplotlib.figure.Figure
    """

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize)

    log2_original = np.log2(original_data[sample_columns].replace(0, np.nan))
    log2_normalized = np.log2(normalized_data[sample_columns].replace(0, np.nan))

    _plot_smoothed_densities(ax1, log2_original, sample_columns)
    ax1.set_xlabel("Log2 Count")
    ax1.set_ylabel("Density")
    ax1.set_title("Before Normalization")
    ax1.grid(True, alpha=0.3)

    _plot_smoothed_densities(ax2, log2_normalized, sample_columns)
    ax2.set_xlabel("Log2 Normalized Abundance")
    ax2.set_ylabel("Density")
    ax2.set_title(describe_normalization(method), fontsize=10)
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.show()

    original_medians = log2_original.median()
    norm_medians = log2_normalized.median()

    print(f"Normalization comparison ({method}):")
    print(f"Original median range: {original_medians.max() - original_medians.min():.3f}")
    print(f"Normalized median range: {norm_medians.max() - norm_medians.min():.3f}")

    return fig


def plot_marker_gene_abundance(
    data: pd.DataFrame,
    config: Optional[MarkerGeneConfig] = None,
    sample_columns: Optional[List[str]] = None,
    figsize: Tuple[int, int] = (16, 6),
    title: str = "Marker Gene Abundance by Sample",
):
    """
    Plot the summed abundance of each marker KO per sample, with the marker median.

    Markers should agree within a sample; a marker far from the others points
    at annotation problems for that KO.

    Returns:
    --------
    matplotlib.figure.Figure
    """
    marker_abundances = calculate_marker_abundances(data, config, sample_columns)
    marker_medians = marker_abundances.median(axis=0)

    plot_df = (
        marker_abundances.reset_index()
        .melt(id_vars="KO", var_name="Sample", value_name="Abundance")
        .dropna(subset=["Abundance"])
    )

    fig, ax = plt.subplots(figsize=figsize)
    sns.stripplot(data=plot_df, x="Sample", y="Abundance", hue="KO", ax=ax, size=5, jitter=0.15)
    ax.scatter(
        range(len(marker_medians)),
        marker_medians.values,
        marker="_",
        s=600,
        color="black",
        label="Marker median",
        zorder=3,
    )

    if (plot_df["Abundance"] > 0).all():
        ax.set_yscale("log")
    ax.set_xlabel("Sample", fontsize=14)
    ax.set_ylabel("Summed marker abundance", fontsize=14)
    ax.set_title(title, fontsize=16, fontweight="bold")
    ax.tick_params(axis="x", rotation=45)
    ax.legend(bbox_to_anchor=(1.02, 1), loc="upper left", fontsize=8)
    ax.grid(True, alpha=0.3, axis="y")

    plt.tight_layout()
    plt.show()

    return fig


def plot_gene_vs_transcript_abundance(
    expression_df: pd.DataFrame,
    ko: Optional[str] = None,
    figsize: Tuple[int, int] = (8, 8),
):
    """
    Log-log scatter of gene abundance against transcript abundance.

    Only finite, positive values are plotted. With ko set, only that KO is shown.

    Returns:
    --------
    matplotlib.figure.Figure
    """
    plot_df = filter_finite_expression(expression_df)
    if ko is not None:
        plot_df = plot_df[plot_df["KO"] == ko]
    plot_df = plot_df[(plot_df["gene_abundance"] > 0) & (plot_df["transcript_abundance"] > 0)]

    fig, ax = plt.subplots(figsize=figsize)

    if plot_df.empty:
        print(f"  No finite values to plot{f' for {ko}' if ko else ''}")
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
    else:
        sns.scatterplot(
            data=plot_df,
            x="gene_abundance",
            y="transcript_abundance",
            hue="KO" if ko is None and plot_df["KO"].nunique() <= 10 else None,
            alpha=0.6,
            ax=ax,
        )
        ax.set_xscale("log")
        ax.set_yscale("log")

        low = min(plot_df["gene_abundance"].min(), plot_df["transcript_abundance"].min())
        high = max(plot_df["gene_abundance"].max(), plot_df["transcript_abundance"].max())
        ax.plot([low, high], [low, high], "k--", linewidth=1, alpha=0.5, label="expression = 1")

    ax.set_xlabel("Gene abundance (per cell)", fontsize=14)
    ax.set_ylabel("Transcript abundance (per cell)", fontsize=14)
    ax.set_title(f"Gene vs Transcript Abundance{f' ({ko})' if ko else ''}", fontsize=16, fontweight="bold")
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.show()

    print(f"Points plotted: {len(plot_df)}")

    return fig


def plot_expression_vs_covariate(
    expression_df: pd.DataFrame,
    metadata: pd.DataFrame,
    ko: str,
    covariate: str = "Temperature",
    hue: Optional[str] = "polar",
    sample_column: str = "sample_metag",
    log_scale: bool = True,
    figsize: Tuple[int, int] = (10, 6),
):
    """
    Scatter of one KO's expression against an environmental covariate.

    Parameters:
    -----------
    expression_df : pd.DataFrame
        Output of combine_expression()
    metadata : pd.DataFrame
        Sample metadata with the covariate (and hue) columns
    ko : str
        KO identifier to plot
    covariate : str
        Metadata column on the x axis
    hue : str, optional
        Metadata column used for colouring points
    sample_column : str
        Metadata column joining to the expression table

    Returns:
    --------
    matplotlib.figure.Figure
    """
    meta_columns = [sample_column, covariate] + ([hue] if hue else [])
    missing = [col for col in meta_columns if col not in metadata.columns]
    if missing:
        raise ValueError(f"Metadata is missing columns: {missing}")

    ko_df = filter_finite_expression(expression_df[expression_df["KO"] == ko])
    plot_df = ko_df.merge(
        metadata[meta_columns].drop_duplicates(subset=sample_column),
        on=sample_column,
        how="inner",
    )

    fig, ax = plt.subplots(figsize=figsize)
    sns.scatterplot(data=plot_df, x=covariate, y="expression", hue=hue, ax=ax, s=50, alpha=0.8)

    if log_scale and not plot_df.empty and (plot_df["expression"] > 0).all():
        ax.set_yscale("log")

    ax.set_xlabel(covariate, fontsize=14)
    ax.set_ylabel("Expression (transcript / gene abundance)", fontsize=14)
    ax.set_title(f"{ko} Expression vs {covariate}", fontsize=16, fontweight="bold")
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.show()

    print(f"{ko}: {len(plot_df)} sample pairs plotted")

    return fig
