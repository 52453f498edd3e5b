"""Public API: run a complete analysis plan."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Tuple, Hashable, TYPE_CHECKING

import pandas as pd

from statflow.cleaning.cleaner import CleaningResult, apply_rules
from statflow.data.dataset import Dataset
from statflow.data.loaders import load_dataset
from statflow.data.validation import validate_columns, generate_missingness_report
from statflow.stats import descriptive
from statflow.stats.descriptive import SummaryStatistics, CrossTable, OutlierSet
from statflow.stats.errors import NotComputableError
from statflow.stats.relationships import CorrelationResult, RegressionModel, correlate, fit_linear
from statflow.stats.tests import HypothesisTestResult, run_test
from statflow.stats import reports

if TYPE_CHECKING:
    from statflow.config import AnalysisPlan, Ranking

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResults:
    """Everything one run produced, in report order.

    Attributes:
        plan: The plan that was run
        raw: Dataset as loaded (before cleaning)
        cleaning: Cleaned dataset and the ordered cleaning log
        missingness: Missing-value report of the cleaned dataset
        summaries: One SummaryStatistics per requested column
        group_summaries: (column, by, group -> SummaryStatistics)
        frequencies: Column -> frequency table
        crosstabs: Requested cross tables
        outliers: Requested outlier sets
        rankings: (Ranking, top, bottom)
        correlations: Requested correlations (possibly undefined)
        regressions: Requested regressions (possibly undefined)
        tests: Hypothesis test results (possibly not computable)
        skipped: (computation, reason) for descriptive computations that could not run
        charts: render_charts output, if charts were rendered
        report: Rendered text report
    """

    plan: AnalysisPlan
    raw: Dataset
    cleaning: CleaningResult
    missingness: Dict[str, Any] = field(default_factory=dict)
    summaries: List[SummaryStatistics] = field(default_factory=list)
    group_summaries: List[Tuple[str, str, Dict[Hashable, SummaryStatistics]]] = field(default_factory=list)
    frequencies: Dict[str, pd.DataFrame] = field(default_factory=dict)
    crosstabs: List[CrossTable] = field(default_factory=list)
    outliers: List[OutlierSet] = field(default_factory=list)
    rankings: List[Tuple[Ranking, pd.DataFrame, pd.DataFrame]] = field(default_factory=list)
    correlations: List[CorrelationResult] = field(default_factory=list)
    regressions: List[RegressionModel] = field(default_factory=list)
    tests: List[HypothesisTestResult] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    charts: Optional[Dict[str, Any]] = None
    report: str = ""

    @property
    def dataset(self) -> Dataset:
        """The cleaned dataset every computation ran on."""
        return self.cleaning.dataset


def _describe(plan: AnalysisPlan, dataset: Dataset, results: AnalysisResults) -> None:
    for col in plan.summaries:
        results.summaries.append(descriptive.summarize(dataset, col))

    for col, by in plan.group_summaries:
        results.group_summaries.append((col, by, descriptive.summarize_by(dataset, col, by)))

    for col in plan.frequencies:
        results.frequencies[col] = descriptive.frequency(dataset, col, include_missing=True)

    for row, col in plan.crosstabs:
        results.crosstabs.append(descriptive.cross_frequency(dataset, row, col))

    for col in plan.outliers:
        try:
            results.outliers.append(descriptive.outliers(dataset, col, plan.outlier_id_column))
        except NotComputableError as e:
            logger.warning(f"Outliers of '{col}' not computable: {e}")
            results.skipped.append((f"outliers {col}", str(e)))

    for ranking in plan.rankings:
        top, bottom = descriptive.top_bottom(
            dataset, ranking.column, ranking.label_column, ranking.n, ranking.where
        )
        results.rankings.append((ranking, top, bottom))


def _relate(plan: AnalysisPlan, dataset: Dataset, results: AnalysisResults) -> None:
    for a, b in plan.correlations:
        res = correlate(dataset, a, b)
        if not res.defined:
            logger.warning(f"Correlation {a} / {b} undefined: {res.reason}")
        results.correlations.append(res)

    for response, predictor in plan.regressions:
        model = fit_linear(dataset, response, predictor)
        if not model.defined:
            logger.warning(f"Regression {response} ~ {predictor} undefined: {model.reason}")
        results.regressions.append(model)

    for kind, pairs in (
        ("two_sample", plan.two_sample_tests),
        ("association", plan.association_tests),
        ("variance", plan.variance_tests),
    ):
        for a, b in pairs:
            results.tests.append(run_test(kind, dataset, a, b, plan.alpha))


def run_analysis(plan: AnalysisPlan, print_report: bool = True) -> AnalysisResults:
    """Run the pipeline load → clean → describe → relate/test → report → charts.

    Args:
        plan: AnalysisPlan describing the run
        print_report: Print the text report to stdout (default: True)

    Returns:
        AnalysisResults with every computed value and the report text

    Raises:
        FileNotFoundError: If the data file does not exist
        ValueError: If the plan references a column that does not exist after
            cleaning, or a column of the wrong kind

    Notes:
        - A computation that lacks data (too few values, groups or levels)
          does not stop the run; it is reported with its reason.
        - Identical input yields identical report text.

    Example:
        >>> from statflow import AnalysisPlan, DataSpec, run_analysis
        >>> plan = AnalysisPlan(
        ...     data=DataSpec(path="survey.csv"),
        ...     summaries=["Age"],
        ...     two_sample_tests=[("Age", "Gender")],
        ... )
        >>> results = run_analysis(plan)
    """
    print(f"Loading data from {plan.data.path}...")
    raw = load_dataset(plan.data)
    print(f"  • Rows: {raw.n_rows}")
    print(f"  • Columns: {len(raw.columns)}")

    # ──────────────────────────────────────────────────────────────
    # 1. Cleaning
    # ──────────────────────────────────────────────────────────────
    print(f"\n[1/5] Applying {len(plan.rules)} cleaning rule(s)...")
    cleaning = apply_rules(raw, plan.rules)
    dataset = cleaning.dataset
    print(f"  • Rows: {cleaning.rows_before} → {cleaning.rows_after}")

    validate_columns(dataset.columns, plan.referenced_columns())

    results = AnalysisResults(
        plan=plan,
        raw=raw,
        cleaning=cleaning,
        missingness=generate_missingness_report(dataset),
    )

    # ──────────────────────────────────────────────────────────────
    # 2. Descriptive statistics
    # ──────────────────────────────────────────────────────────────
    print("[2/5] Computing descriptive statistics...")
    _describe(plan, dataset, results)

    # ──────────────────────────────────────────────────────────────
    # 3. Relationships and hypothesis tests
    # ──────────────────────────────────────────────────────────────
    print("[3/5] Computing correlations, regressions and hypothesis tests...")
    _relate(plan, dataset, results)

    # ──────────────────────────────────────────────────────────────
    # 4. Report
    # ──────────────────────────────────────────────────────────────
    print("[4/5] Rendering report...")
    results.report = reports.render_report(results)

    # ──────────────────────────────────────────────────────────────
    # 5. Charts
    # ──────────────────────────────────────────────────────────────
    if plan.charts:
        # Import here to avoid loading matplotlib when no charts are requested
        from statflow.stats.viz import render_charts

        print(f"[5/5] Rendering {len(plan.charts)} chart(s)...")
        results.charts = render_charts(dataset, plan.charts, plan.charts_pdf, plan.viz)
        print(f"  • {results.charts['pdf']}")
    else:
        print("[5/5] No charts requested.")

    if print_report:
        print()
        print(results.report)

    print("✓ Analysis complete.")
    return results
