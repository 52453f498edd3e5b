"""Configuration dataclasses for analysis runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, List, Tuple, Any

from statflow.cleaning.rules import CleaningRule
from statflow.data.spec import DataSpec
from statflow.stats.config import ChartSpec, VizConfig

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


@dataclass
class Ranking:
    """Top/bottom ``n`` rows by ``column``, identified by ``label_column``.

    ``where`` optionally restricts the rows first, e.g. ``("Year", 2022)``.
    """

    column: str
    label_column: str
    n: int = 5
    where: Optional[Tuple[str, Any]] = None

    def __post_init__(self):
        if self.n < 1:
            raise ValueError(f"Ranking n must be >= 1, got {self.n}")
        if self.where is not None:
            self.where = tuple(self.where)
            if len(self.where) != 2:
                raise ValueError(f"Ranking 'where' must be (column, value), got {self.where}")


@dataclass
class AnalysisPlan:
    """Everything one analysis run does, in pipeline order.

    Pairs are ``(a, b)`` tuples: regressions are ``(response, predictor)``,
    two-sample and variance tests are ``(value, group)``, association tests
    and cross tables are ``(row, column)``.
    """

    # Load
    data: DataSpec

    # Clean (applied in order, never reordered)
    rules: List[CleaningRule] = field(default_factory=list)

    # Describe
    summaries: List[str] = field(default_factory=list)
    group_summaries: List[Pair] = field(default_factory=list)
    frequencies: List[str] = field(default_factory=list)
    crosstabs: List[Pair] = field(default_factory=list)
    outliers: List[str] = field(default_factory=list)
    outlier_id_column: Optional[str] = None
    rankings: List[Ranking] = field(default_factory=list)

    # Relate / test
    correlations: List[Pair] = field(default_factory=list)
    regressions: List[Pair] = field(default_factory=list)
    two_sample_tests: List[Pair] = field(default_factory=list)
    association_tests: List[Pair] = field(default_factory=list)
    variance_tests: List[Pair] = field(default_factory=list)
    alpha: float = 0.05

    # Visualize
    charts: List[ChartSpec] = field(default_factory=list)
    charts_pdf: Optional[Path] = None
    viz: VizConfig = field(default_factory=VizConfig)

    def __post_init__(self):
        """Validate configuration."""
        if self.alpha <= 0 or self.alpha >= 1:
            raise ValueError(f"Alpha must be in (0, 1), got {self.alpha}")

        for name in (
            "group_summaries",
            "crosstabs",
            "correlations",
            "regressions",
            "two_sample_tests",
            "association_tests",
            "variance_tests",
        ):
            pairs = [tuple(p) for p in getattr(self, name)]
            bad = [p for p in pairs if len(p) != 2]
            if bad:
                raise ValueError(f"{name} entries must be column pairs, got {bad}")
            setattr(self, name, pairs)

        if self.charts_pdf is not None:
            self.charts_pdf = Path(self.charts_pdf)

        if self.charts and self.charts_pdf is None:
            raise ValueError("charts_pdf is required when charts are requested")

    def referenced_columns(self) -> List[str]:
        """Columns the computations and charts need after cleaning, in first-use order."""
        cols: List[str] = []
        cols.extend(self.summaries)
        cols.extend(self.frequencies)
        cols.extend(self.outliers)
        if self.outlier_id_column is not None:
            cols.append(self.outlier_id_column)
        for r in self.rankings:
            cols.extend([r.column, r.label_column])
            if r.where is not None:
                cols.append(r.where[0])
        for pairs in (
            self.group_summaries,
            self.crosstabs,
            self.correlations,
            self.regressions,
            self.two_sample_tests,
            self.association_tests,
            self.variance_tests,
        ):
            for a, b in pairs:
                cols.extend([a, b])
        for chart in self.charts:
            cols.extend(chart.referenced_columns)
        return list(dict.fromkeys(cols))

    def with_default_charts(self, charts_pdf: Path) -> AnalysisPlan:
        """Copy of the plan with one chart per requested analysis, written to ``charts_pdf``.

        Summaries and outliers get a histogram and a boxplot, grouped summaries
        and two-sample/variance tests a grouped boxplot, frequencies a bar chart,
        cross tables and association tests grouped bars, regressions a scatter
        with the fitted line.
        """
        charts: List[ChartSpec] = []
        for col in dict.fromkeys(self.summaries + self.outliers):
            charts.append(ChartSpec("histogram", [col]))
            charts.append(ChartSpec("boxplot", [col]))
        for col, by in dict.fromkeys(self.group_summaries + self.two_sample_tests + self.variance_tests):
            charts.append(ChartSpec("boxplot", [col], by=by))
        for col in self.frequencies:
            charts.append(ChartSpec("bar", [col]))
        for a, b in dict.fromkeys(self.crosstabs + self.association_tests):
            charts.append(ChartSpec("category_bars", [a], by=b))
        for response, predictor in self.regressions:
            charts.append(ChartSpec("scatter_trend", [response], x=predictor))
        logger.debug(f"Derived {len(charts)} chart(s) from the requested analyses")
        return replace(self, charts=self.charts + charts, charts_pdf=charts_pdf)
