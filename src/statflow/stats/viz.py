"""Charts (time series, scatter + trend, boxplots, bars, histograms) exported to PDF/PNG."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Dict, Optional, Sequence
import warnings

import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
import seaborn as sns

from statflow.data.dataset import Dataset
from statflow.stats.config import ChartSpec, VizConfig
from statflow.stats.descriptive import cross_frequency, frequency, level_order
from statflow.stats.relationships import fit_linear

# Suppress seaborn/pandas FutureWarnings
warnings.filterwarnings("ignore", category=FutureWarning, module="seaborn")
warnings.filterwarnings("ignore", category=FutureWarning, module="pandas")

logger = logging.getLogger(__name__)


def plot_frame(dataset: Dataset, columns: Sequence[str], labels: Sequence[str] = ()) -> pd.DataFrame:
    """Plain-dtype copy of the pairwise-complete rows of ``columns``.

    Quantitative columns become float, categorical columns (and any listed in
    ``labels``) become str, so matplotlib and seaborn never see nullable
    extension dtypes.
    """
    cols = list(dict.fromkeys(columns))
    complete = dataset.complete(cols)
    out = {}
    for c in cols:
        if c in labels:
            out[c] = dataset.labels(c).loc[complete.index].astype(str)
        elif dataset.kind(c).is_quantitative:
            out[c] = dataset.values(c).loc[complete.index]
        else:
            out[c] = complete[c].astype(str)
    return pd.DataFrame(out, index=complete.index)


def _no_data(ax, chart: ChartSpec) -> None:
    logger.warning(f"Chart '{chart.default_title}' has no complete rows to plot")
    ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)


def plot_time_series(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """One line per column against ``chart.x``, points in x order."""
    for col in chart.columns:
        df = plot_frame(dataset, [chart.x, col]).sort_values(chart.x, kind="mergesort")
        if df.empty:
            continue
        ax.plot(df[chart.x], df[col], marker="o", linewidth=1.5, label=col)

    if not ax.lines:
        _no_data(ax, chart)
        return

    ax.set_xlabel(chart.x)
    ax.set_ylabel(chart.columns[0] if len(chart.columns) == 1 else "Value")
    if len(chart.columns) > 1:
        ax.legend(frameon=True, fontsize=8)
    ax.grid(alpha=0.2)


def plot_scatter_trend(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """Scatter of ``column`` against ``x`` with the fitted least-squares line."""
    col = chart.columns[0]
    df = plot_frame(dataset, [chart.x, col])
    if df.empty:
        _no_data(ax, chart)
        return

    ax.scatter(
        df[chart.x],
        df[col],
        s=config.point_size,
        alpha=config.alpha_points,
        edgecolors="black",
        linewidths=0.5,
    )

    model = fit_linear(dataset, col, chart.x)
    if model.defined:
        xs = np.linspace(df[chart.x].min(), df[chart.x].max(), 50)
        ax.plot(xs, model.predict(xs), color="#d62728", lw=1.5, label=f"{model.equation} (R² = {model.r_squared:.4f})")
        ax.legend(frameon=True, fontsize=8)
    else:
        logger.info(f"No trend line for {col} ~ {chart.x}: {model.reason}")

    ax.set_xlabel(chart.x)
    ax.set_ylabel(col)
    ax.grid(alpha=0.2)


def plot_boxplot(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """Box & whisker per group of ``by``, or one box per column."""
    if chart.by is None:
        data = pd.DataFrame({c: dataset.values(c) for c in chart.columns})
        if data.dropna(how="all").empty:
            _no_data(ax, chart)
            return
        sns.boxplot(data=data, width=0.6, ax=ax)
        ax.set_ylabel(chart.columns[0] if len(chart.columns) == 1 else "Value")
    else:
        col = chart.columns[0]
        df = plot_frame(dataset, [col, chart.by], labels=[chart.by])
        if df.empty:
            _no_data(ax, chart)
            return
        order = [str(g) for g in level_order(dataset, chart.by, dataset.column(chart.by).dropna())]
        order = [g for g in order if g in set(df[chart.by])]

        sns.boxplot(
            data=df,
            x=chart.by,
            y=col,
            order=order,
            hue=chart.by,
            hue_order=order,
            palette=config.palette,
            legend=False,
            fliersize=0,
            width=0.6,
            ax=ax,
        )
        sns.stripplot(
            data=df,
            x=chart.by,
            y=col,
            order=order,
            color="black",
            size=np.sqrt(config.point_size) / 2,
            alpha=config.alpha_points * 0.6,
            jitter=0.2,
            ax=ax,
        )
        ax.set_xlabel(chart.by)
        ax.set_ylabel(col)

    ax.grid(axis="y", alpha=0.2)


def plot_bar(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """Bar chart of the frequency table of one column."""
    col = chart.columns[0]
    table = frequency(dataset, col)
    if table["count"].sum() == 0:
        _no_data(ax, chart)
        return

    labels = [str(v) for v in table["label"]]
    colors = sns.color_palette(config.palette, len(labels))
    ax.bar(labels, table["count"], color=colors, edgecolor="black", linewidth=0.6)
    ax.set_xlabel(col)
    ax.set_ylabel("Count")
    ax.grid(axis="y", alpha=0.2)


def plot_histogram(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """Histogram of one quantitative column."""
    col = chart.columns[0]
    x = dataset.values(col).dropna()
    if x.empty:
        _no_data(ax, chart)
        return

    sns.histplot(x=x.to_numpy(), bins=chart.bins, edgecolor="black", ax=ax)
    ax.set_xlabel(col)
    ax.set_ylabel("Count")
    ax.grid(axis="y", alpha=0.2)


def plot_category_bars(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """Counts of one categorical column split by ``by``, dodged or stacked."""
    col = chart.columns[0]
    counts = cross_frequency(dataset, col, chart.by).counts
    if counts.to_numpy().sum() == 0:
        _no_data(ax, chart)
        return

    counts.index = [str(v) for v in counts.index]
    counts.columns = [str(v) for v in counts.columns]
    colors = sns.color_palette(config.palette, len(counts.columns))
    counts.plot(kind="bar", stacked=chart.stacked, color=colors, edgecolor="black", linewidth=0.6, rot=0, ax=ax)

    ax.set_xlabel(col)
    ax.set_ylabel("Count")
    ax.legend(title=chart.by, frameon=True, fontsize=8)
    ax.grid(axis="y", alpha=0.2)


def plot_distribution(ax, dataset: Dataset, chart: ChartSpec, config: VizConfig) -> None:
    """Histogram with density curve, optionally overlaid per group of ``by``."""
    col = chart.columns[0]
    cols = [col] if chart.by is None else [col, chart.by]
    df = plot_frame(dataset, cols, labels=cols[1:])
    if df.empty:
        _no_data(ax, chart)
        return

    kde = len(df) > 1 and df[col].nunique() > 1
    sns.histplot(
        data=df,
        x=col,
        hue=chart.by,
        bins=chart.bins,
        kde=kde,
        palette=config.palette if chart.by else None,
        ax=ax,
    )
    ax.set_xlabel(col)
    ax.grid(axis="y", alpha=0.2)


PLOTTERS = {
    "time_series": plot_time_series,
    "scatter_trend": plot_scatter_trend,
    "boxplot": plot_boxplot,
    "bar": plot_bar,
    "histogram": plot_histogram,
    "category_bars": plot_category_bars,
    "distribution": plot_distribution,
}


def draw_chart(dataset: Dataset, chart: ChartSpec, config: VizConfig):
    """Create a figure for one chart; the caller closes it."""
    dataset.require(*chart.referenced_columns)
    fig, ax = plt.subplots(figsize=(config.fig_width, config.fig_height), dpi=config.fig_dpi)
    PLOTTERS[chart.kind](ax, dataset, chart, config)
    ax.set_title(chart.default_title)
    fig.tight_layout()
    return fig


def render_charts(
    dataset: Dataset,
    charts: Sequence[ChartSpec],
    pdf_path: Path,
    config: Optional[VizConfig] = None,
) -> Dict[str, object]:
    """Render every chart into one multi-page PDF (one page per chart).

    Args:
        dataset: Cleaned dataset
        charts: Charts in page order
        pdf_path: Output PDF path (parent directories are created)
        config: VizConfig; ``png_dir`` additionally writes one PNG per chart

    Returns:
        Dictionary with the PDF path, the PNG paths and the page count
    """
    config = config or VizConfig()
    pdf_path = Path(pdf_path)
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    if config.png_dir is not None:
        config.png_dir.mkdir(parents=True, exist_ok=True)

    pngs: List[Path] = []
    with PdfPages(pdf_path) as pdf:
        for i, chart in enumerate(charts, start=1):
            logger.debug(f"[{i}/{len(charts)}] {chart.kind}: {chart.default_title}")
            fig = draw_chart(dataset, chart, config)
            pdf.savefig(fig)
            if config.png_dir is not None:
                png_path = config.png_dir / f"{i:02d}_{chart.file_stem}.png"
                fig.savefig(png_path)
                pngs.append(png_path)
            plt.close(fig)

    logger.info(f"Wrote {len(charts)} chart page(s) to {pdf_path}")
    return {"pdf": pdf_path, "pngs": pngs, "n_pages": len(charts)}
