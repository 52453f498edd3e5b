"""Build the deterministic plain-text analysis report."""

from __future__ import annotations

from typing import List, Dict, Hashable, Sequence, TYPE_CHECKING

import numpy as np
import pandas as pd

from statflow import __version__
from statflow.stats.descriptive import SummaryStatistics, CrossTable, OutlierSet
from statflow.stats.relationships import CorrelationResult, RegressionModel
from statflow.stats.tests import HypothesisTestResult

if TYPE_CHECKING:
    from statflow.stats.api import AnalysisResults

# Decimal places per kind of number
PRECISION = {
    "count": 0,
    "percent": 1,
    "location": 2,
    "statistic": 3,
    "probability": 4,
}

MISSING = "NA"

STATISTIC_SYMBOLS = {
    "One-way ANOVA": "F",
    "Pearson chi-square test of independence": "X-squared",
}


def fmt(value, kind: str = "location") -> str:
    """Format a number with the fixed precision of its kind; NaN/None -> "NA"."""
    if value is None or value is pd.NA:
        return MISSING
    value = float(value)
    if not np.isfinite(value):
        return MISSING if np.isnan(value) else ("Inf" if value > 0 else "-Inf")
    digits = PRECISION[kind]
    text = f"{value:.{digits}f}"
    # "-0.00" -> "0.00"
    if float(text) == 0:
        text = text.lstrip("-")
    return text


def fmt_p(p: float) -> str:
    """Format a p-value at probability precision, flooring tiny values."""
    if p is None or not np.isfinite(p):
        return MISSING
    floor = 10 ** -PRECISION["probability"]
    if p < floor:
        return f"< {floor:.{PRECISION['probability']}f}"
    return fmt(p, "probability")


def header(title: str) -> str:
    return f"{title}\n{'=' * len(title)}"


def table_text(df: pd.DataFrame) -> str:
    """Render a DataFrame of preformatted strings without its index."""
    if df.empty:
        return "(empty)"
    return df.to_string(index=False)


def _summary_row(label, s: SummaryStatistics) -> Dict[str, str]:
    return {
        "": str(label),
        "n": fmt(s.n, "count"),
        "missing": fmt(s.n_missing, "count"),
        "mean": fmt(s.mean),
        "sd": fmt(s.sd),
        "median": fmt(s.median),
        "min": fmt(s.min),
        "q1": fmt(s.q1),
        "q3": fmt(s.q3),
        "max": fmt(s.max),
    }


def format_summaries(summaries: Sequence[SummaryStatistics]) -> str:
    """One row per column: n, missing, mean, sd, median, min, q1, q3, max."""
    return table_text(pd.DataFrame([_summary_row(s.column, s) for s in summaries]))


def format_group_summary(column: str, by: str, groups: Dict[Hashable, SummaryStatistics]) -> str:
    lines = [f"{column} by {by}"]
    lines.append(table_text(pd.DataFrame([_summary_row(g, s) for g, s in groups.items()])))
    return "\n".join(lines)


def format_frequency(column: str, table: pd.DataFrame) -> str:
    rows = [
        {
            column: MISSING if label is None or label is pd.NA else str(label),
            "count": fmt(count, "count"),
            "percent": fmt(pct, "percent"),
        }
        for label, count, pct in table[["label", "count", "percent"]].itertuples(index=False)
    ]
    return table_text(pd.DataFrame(rows))


def format_cross_table(table: CrossTable) -> str:
    """Counts and row percentages of a cross table."""
    counts = table.counts.copy()
    counts = counts.apply(lambda col: col.map(lambda v: fmt(v, "count")))
    pct = table.row_percent.apply(lambda col: col.map(lambda v: fmt(v, "percent")))

    def _render(df: pd.DataFrame) -> str:
        df = df.copy()
        df.index = [str(i) for i in df.index]
        df.columns = [str(c) for c in df.columns]
        df.index.name = table.row_column
        return df.reset_index().to_string(index=False)

    lines = [
        f"{table.row_column} x {table.col_column} (n = {fmt(table.n, 'count')})",
        "Counts:",
        _render(counts),
        "Row %:",
        _render(pct),
    ]
    return "\n".join(lines)


def format_outliers(o: OutlierSet) -> str:
    lines = [
        f"{o.column}: Q1 = {fmt(o.q1)}, Q3 = {fmt(o.q3)}, IQR = {fmt(o.iqr)}, "
        f"fences [{fmt(o.lower_fence)}, {fmt(o.upper_fence)}]"
    ]
    if o.count == 0:
        lines.append("  no outliers")
    else:
        lines.append(f"  {o.count} outlier(s):")
        for row_id, value in o.pairs():
            lines.append(f"    {row_id}: {fmt(value)}")
    return "\n".join(lines)


def format_ranking(column: str, label_column: str, top: pd.DataFrame, bottom: pd.DataFrame, where=None) -> str:
    title = f"{column} by {label_column}"
    if where is not None:
        title += f" ({where[0]} = {where[1]})"

    def _render(df: pd.DataFrame) -> str:
        rows = [{label_column: str(lab), column: fmt(v)} for lab, v in df[[label_column, column]].itertuples(index=False)]
        return table_text(pd.DataFrame(rows))

    return "\n".join([title, f"Top {len(top)}:", _render(top), f"Bottom {len(bottom)}:", _render(bottom)])


def format_correlation(c: CorrelationResult) -> str:
    if not c.defined:
        return f"{c.column_a} vs {c.column_b}: undefined ({c.reason}), n = {c.n_pairs}"
    return (
        f"{c.column_a} vs {c.column_b}: r = {fmt(c.coefficient, 'probability')} "
        f"({c.strength}, {c.direction}), p = {fmt_p(c.p_value)}, n = {c.n_pairs}"
    )


def format_regression(m: RegressionModel) -> str:
    if not m.defined:
        return f"{m.response} ~ {m.predictor}: undefined ({m.reason}), n = {m.n}"
    lines = [
        f"{m.response} ~ {m.predictor}: {m.response} = {fmt(m.intercept)} + {fmt(m.slope)} * {m.predictor}",
        f"  R² = {fmt(m.r_squared, 'probability')}, r = {fmt(m.r, 'probability')} ({m.strength}), "
        f"trend {m.trend}, n = {m.n}",
    ]
    if np.isfinite(m.slope_se):
        lines.append(
            f"  slope SE = {fmt(m.slope_se, 'statistic')}, intercept SE = {fmt(m.intercept_se, 'statistic')}, "
            f"slope p = {fmt_p(m.slope_p_value)}, residual SE = {fmt(m.residual_se, 'statistic')}"
        )
    return "\n".join(lines)


def format_test(t: HypothesisTestResult, alpha: float = 0.05) -> str:
    """Text block for one hypothesis test, including post-hoc comparisons."""
    title = f"{t.test}: {' / '.join(t.variables)}"
    if not t.computed:
        return f"{title}\n  not computable: {t.reason}"

    symbol = STATISTIC_SYMBOLS.get(t.test, "t")
    # Welch df is fractional; every other df is a count
    df_text = fmt(t.df, "count" if float(t.df).is_integer() else "statistic")
    if np.isfinite(t.df2):
        df_text = f"{df_text}, {fmt(t.df2, 'count')}"

    verdict = "significant" if t.significant(alpha) else "not significant"
    lines = [
        title,
        f"  {symbol} = {fmt(t.statistic, 'statistic')}, df = {df_text}, p = {fmt_p(t.p_value)}, "
        f"n = {fmt(t.n, 'count')} ({verdict} at alpha = {alpha:g})",
    ]
    if t.effect_size_name:
        lines.append(f"  {t.effect_size_name} = {fmt(t.effect_size, 'statistic')}")
    if t.group_means:
        groups = ", ".join(
            f"{g}: mean {fmt(t.group_means[g])} (n = {fmt(t.group_sizes[g], 'count')})" for g in t.group_means
        )
        lines.append(f"  groups: {groups}")
    if t.note:
        lines.append(f"  note: {t.note}")
    if t.posthoc:
        lines.append("  Tukey HSD:")
        rows = [
            {
                "group1": c.group1,
                "group2": c.group2,
                "diff": fmt(c.mean_diff),
                "p_adj": fmt_p(c.p_adj),
                "ci_low": fmt(c.ci_low),
                "ci_high": fmt(c.ci_high),
                "reject": "yes" if c.reject else "no",
            }
            for c in t.posthoc
        ]
        lines.extend("    " + line for line in table_text(pd.DataFrame(rows)).splitlines())
    return "\n".join(lines)


def format_data_quality(results: AnalysisResults) -> str:
    """Load issues, the cleaning log and remaining missing values."""
    lines = []
    cleaning = results.cleaning

    issues = {c: n for c, n in results.raw.load_issues.items() if n}
    if issues:
        lines.append("Unparseable values set to missing at load:")
        lines.extend(f"  {c}: {n}" for c, n in issues.items())
    else:
        lines.append("Unparseable values set to missing at load: none")

    if cleaning.steps:
        lines.append("Cleaning steps:")
        for i, step in enumerate(cleaning.steps, start=1):
            if step.rows_removed or step.rule in ("require", "keep"):
                detail = f"rows {step.rows_before} -> {step.rows_after}"
            else:
                detail = f"{step.changed} changed, {step.new_missing} new missing"
            lines.append(f"  {i}. {step.description}: {detail}")
    else:
        lines.append("Cleaning steps: none")

    coercions = cleaning.coercion_counts
    if coercions:
        lines.append("Values that failed numeric coercion:")
        lines.extend(f"  {c}: {n}" for c, n in coercions.items())

    lines.append(f"Rows: {cleaning.rows_before} loaded, {cleaning.rows_after} after cleaning")

    missing = results.missingness
    cols = missing.get("cols_with_missing", [])
    if cols:
        lines.append("Missing values after cleaning:")
        lines.extend(
            f"  {c}: {missing['missing_counts'][c]} ({fmt(missing['missing_pct'][c], 'percent')}%)" for c in cols
        )
    else:
        lines.append("Missing values after cleaning: none")

    return "\n".join(lines)


def render_report(results: AnalysisResults) -> str:
    """Render every section of an analysis as plain text.

    Sections without results are omitted. The output depends only on the
    results, so identical input yields identical text.
    """
    plan = results.plan
    dataset = results.dataset
    sections: List[str] = []

    sections.append(
        "\n".join(
            [
                header("Dataset"),
                f"Source: {dataset.source}",
                f"Rows: {dataset.n_rows}",
                f"Columns: {', '.join(f'{c} ({dataset.kind(c).value})' for c in dataset.columns)}",
                f"statflow {__version__}",
            ]
        )
    )

    sections.append("\n".join([header("Data quality"), format_data_quality(results)]))

    if results.summaries:
        sections.append("\n".join([header("Summary statistics"), format_summaries(results.summaries)]))

    if results.group_summaries:
        blocks = [format_group_summary(col, by, groups) for col, by, groups in results.group_summaries]
        sections.append("\n".join([header("Grouped summaries"), "\n\n".join(blocks)]))

    if results.frequencies:
        blocks = [format_frequency(col, table) for col, table in results.frequencies.items()]
        sections.append("\n".join([header("Frequencies"), "\n\n".join(blocks)]))

    if results.crosstabs:
        blocks = [format_cross_table(t) for t in results.crosstabs]
        sections.append("\n".join([header("Cross tables"), "\n\n".join(blocks)]))

    if results.outliers or results.skipped:
        blocks = [format_outliers(o) for o in results.outliers]
        blocks.extend(f"{what}: not computable ({reason})" for what, reason in results.skipped)
        sections.append("\n".join([header("Outliers (1.5 x IQR)"), "\n".join(blocks)]))

    if results.rankings:
        blocks = [
            format_ranking(r.column, r.label_column, top, bottom, r.where) for r, top, bottom in results.rankings
        ]
        sections.append("\n".join([header("Rankings"), "\n\n".join(blocks)]))

    if results.correlations:
        sections.append(
            "\n".join([header("Correlations (Pearson)")] + [format_correlation(c) for c in results.correlations])
        )

    if results.regressions:
        sections.append(
            "\n".join([header("Linear regressions")] + [format_regression(m) for m in results.regressions])
        )

    if results.tests:
        blocks = [format_test(t, plan.alpha) for t in results.tests]
        sections.append("\n".join([header("Hypothesis tests"), "\n\n".join(blocks)]))

    return "\n\n".join(sections) + "\n"
