"""End-to-end tests for run_analysis."""

from __future__ import annotations

from pathlib import Path

import pytest

from statflow import AnalysisPlan, ColumnKind, ColumnSpec, DataSpec, run_analysis
from statflow.cleaning import RemapRule, InvalidateRule, RequireRule, CoerceNumericRule
from statflow.config import Ranking
from statflow.stats import ChartSpec


def survey_plan(path: Path, **kwargs) -> AnalysisPlan:
    spec = DataSpec(
        path=path,
        delimiter=";",
        columns=[ColumnSpec("Age", ColumnKind.NUMERIC), ColumnSpec("Gender", ColumnKind.CATEGORICAL)],
    )
    rules = [
        RemapRule("Gender", {"man": "male", "woman": "female"}),
        InvalidateRule("Gender", header_fragment=True),
        RequireRule(["Gender", "Age"]),
    ]
    defaults = dict(
        summaries=["Age"],
        group_summaries=[("Age", "Gender")],
        frequencies=["Gender"],
        crosstabs=[("Gender", "Risk_Assessment")],
        outliers=["Age"],
        two_sample_tests=[("Age", "Gender")],
        association_tests=[("Gender", "Risk_Assessment")],
        variance_tests=[("Age", "Risk_Assessment")],
    )
    defaults.update(kwargs)
    return AnalysisPlan(data=spec, rules=rules, **defaults)


# ============================================================================
# Survey pipeline
# ============================================================================


def test_survey_pipeline(survey_csv):
    results = run_analysis(survey_plan(survey_csv), print_report=False)

    assert results.raw.n_rows == 8
    assert results.raw.load_issues == {"Age": 1}
    # row 2 (Age "x"), row 5 (Age NA) and row 7 (header fragment) are dropped
    assert results.dataset.n_rows == 5
    assert list(results.dataset.row_ids) == [0, 2, 3, 5, 7]
    assert results.dataset.labels("Gender").tolist() == ["male", "male", "female", "female", "male"]

    age = results.summaries[0]
    assert age.n == 5
    assert age.mean == pytest.approx(35.0)

    assert [t.test for t in results.tests] == [
        "Welch two-sample t-test",
        "Pearson chi-square test of independence",
        "One-way ANOVA",
    ]
    assert all(t.computed for t in results.tests)
    assert results.tests[0].group_sizes == {"female": 2, "male": 3}
    assert results.tests[1].note is not None

    freq = results.frequencies["Gender"]
    assert freq["label"].tolist()[:2] == ["female", "male"]
    assert freq["count"].tolist() == [2, 3, 0]


def test_report_sections(survey_csv):
    report = run_analysis(survey_plan(survey_csv), print_report=False).report

    for section in (
        "Dataset",
        "Data quality",
        "Summary statistics",
        "Grouped summaries",
        "Frequencies",
        "Cross tables",
        "Outliers (1.5 x IQR)",
        "Hypothesis tests",
    ):
        assert f"\n{section}\n{'=' * len(section)}\n" in "\n" + report

    assert "Age: 1" in report
    assert "Rows: 8 loaded, 5 after cleaning" in report
    assert "Welch two-sample t-test: Age / Gender" in report
    assert "Correlations" not in report


def test_report_is_deterministic(survey_csv):
    first = run_analysis(survey_plan(survey_csv), print_report=False).report
    second = run_analysis(survey_plan(survey_csv), print_report=False).report
    assert first == second


def test_report_printed(survey_csv, capsys):
    results = run_analysis(survey_plan(survey_csv))
    out = capsys.readouterr().out

    assert "[1/5] Applying 3 cleaning rule(s)..." in out
    assert results.report in out
    assert "✓ Analysis complete." in out


def test_not_computable_test_does_not_stop_run(survey_csv):
    results = run_analysis(
        survey_plan(survey_csv, two_sample_tests=[("Age", "Risk_Assessment"), ("Age", "ID")]),
        print_report=False,
    )

    welch = results.tests[0:2]
    assert welch[0].computed
    assert not welch[1].computed
    assert "exactly 2" in welch[1].reason
    assert "not computable" in results.report


def test_unknown_column_fails_fast(survey_csv):
    with pytest.raises(ValueError, match="Income"):
        run_analysis(survey_plan(survey_csv, summaries=["Income"]), print_report=False)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        run_analysis(survey_plan(tmp_path / "nope.csv"), print_report=False)


# ============================================================================
# Yearly series pipeline
# ============================================================================


def test_yearly_pipeline_with_charts(yearly_csv, tmp_path):
    spec = DataSpec(
        path=yearly_csv,
        delimiter=";",
        decimal=",",
        columns=[ColumnSpec("Year", ColumnKind.ORDINAL), ColumnSpec("Germany", ColumnKind.NUMERIC)],
    )
    plan = AnalysisPlan(
        data=spec,
        summaries=["France", "Germany"],
        correlations=[("France", "Germany")],
        regressions=[("France", "Year")],
        rankings=[Ranking("France", "Year", n=2)],
        charts=[ChartSpec("time_series", ["France", "Germany"], x="Year")],
        charts_pdf=tmp_path / "charts.pdf",
    ).with_default_charts(tmp_path / "charts.pdf")

    results = run_analysis(plan, print_report=False)

    assert results.raw.load_issues == {"Germany": 1}
    assert results.correlations[0].n_pairs == 4
    assert results.regressions[0].trend == "increasing"
    assert results.rankings[0][1]["Year"].tolist() == [2019, 2018]

    assert results.charts["pdf"].exists()
    # time series + histogram/boxplot per summary column + scatter/trend
    assert results.charts["n_pages"] == 1 + 4 + 1
    assert "Linear regressions" in results.report
    assert "Rankings" in results.report


def test_derived_column_pipeline(yearly_csv):
    from statflow.cleaning import DeriveRule

    spec = DataSpec(path=yearly_csv, delimiter=";", decimal=",", columns=[ColumnSpec("Year", ColumnKind.ORDINAL), ColumnSpec("Germany", ColumnKind.NUMERIC)])
    plan = AnalysisPlan(
        data=spec,
        rules=[DeriveRule("Total", "France + Germany")],
        summaries=["Total"],
    )
    results = run_analysis(plan, print_report=False)

    assert results.summaries[0].n == 4
    assert results.summaries[0].n_missing == 1
