"""Configuration dataclasses for charts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

CHART_KINDS = (
    "time_series",
    "scatter_trend",
    "boxplot",
    "bar",
    "histogram",
    "category_bars",
    "distribution",
)


@dataclass
class VizConfig:
    """Configuration for chart rendering.

    Attributes:
        png_dir: Optional directory for one PNG per chart (None = PDF only)
        fig_dpi: Figure DPI (default: 160)
        fig_width: Figure width in inches (default: 7.5)
        fig_height: Figure height in inches (default: 5.0)
        point_size: Scatter point size (default: 48.0)
        alpha_points: Scatter point transparency (default: 0.9)
        palette: Seaborn palette for grouped charts (default: "tab10")
    """

    png_dir: Optional[Path] = None
    fig_dpi: int = 160
    fig_width: float = 7.5
    fig_height: float = 5.0
    point_size: float = 48.0
    alpha_points: float = 0.9
    palette: str = "tab10"

    def __post_init__(self):
        """Validate configuration."""
        if self.png_dir is not None:
            self.png_dir = Path(self.png_dir)

        if self.fig_dpi <= 0:
            raise ValueError(f"fig_dpi must be positive, got {self.fig_dpi}")

        if self.fig_width <= 0 or self.fig_height <= 0:
            raise ValueError(f"Figure size must be positive, got {self.fig_width} x {self.fig_height}")

        if not 0 < self.alpha_points <= 1:
            raise ValueError(f"alpha_points must be in (0, 1], got {self.alpha_points}")


@dataclass
class ChartSpec:
    """One chart to render.

    Attributes:
        kind: One of time_series, scatter_trend, boxplot, bar, histogram,
            category_bars, distribution
        columns: Plotted column(s). time_series draws one line per column;
            boxplot draws one box per column when ``by`` is not set
        x: X-axis column (time_series, scatter_trend)
        by: Grouping column (boxplot, category_bars, distribution)
        title: Chart title (default derived from the columns)
        stacked: Stack instead of dodge the bars of category_bars
        bins: Histogram bin count
        name: File stem for the PNG export (default derived from kind and columns)
    """

    kind: str
    columns: List[str] = field(default_factory=list)
    x: Optional[str] = None
    by: Optional[str] = None
    title: Optional[str] = None
    stacked: bool = False
    bins: int = 10
    name: Optional[str] = None

    def __post_init__(self):
        """Validate configuration."""
        if isinstance(self.columns, str):
            self.columns = [self.columns]
        self.columns = list(self.columns)

        if self.kind not in CHART_KINDS:
            raise ValueError(f"Unknown chart kind '{self.kind}'. Options: {list(CHART_KINDS)}")

        if not self.columns:
            raise ValueError(f"{self.kind} chart needs at least one column")

        if self.kind in ("time_series", "scatter_trend") and self.x is None:
            raise ValueError(f"{self.kind} chart needs an x column")

        single = ("scatter_trend", "bar", "histogram", "category_bars", "distribution")
        if self.kind in single and len(self.columns) != 1:
            raise ValueError(f"{self.kind} chart takes exactly one column, got {self.columns}")

        if self.kind == "boxplot" and self.by is not None and len(self.columns) != 1:
            raise ValueError("Grouped boxplot takes exactly one column")

        if self.kind == "category_bars" and self.by is None:
            raise ValueError("category_bars chart needs a 'by' column")

        if self.bins < 1:
            raise ValueError(f"bins must be >= 1, got {self.bins}")

    @property
    def referenced_columns(self) -> List[str]:
        cols = list(self.columns)
        for extra in (self.x, self.by):
            if extra is not None:
                cols.append(extra)
        return cols

    @property
    def default_title(self) -> str:
        if self.title:
            return self.title
        main = " & ".join(self.columns)
        if self.kind in ("time_series", "scatter_trend"):
            return f"{main} by {self.x}"
        if self.by is not None:
            return f"{main} by {self.by}"
        return main

    @property
    def file_stem(self) -> str:
        if self.name:
            return self.name
        parts = [self.kind] + self.columns + ([self.by] if self.by else [])
        return "_".join(p.replace(" ", "_").replace("/", "_") for p in parts)
