"""Statistics subsystem: descriptive statistics, relationships, hypothesis tests, reports and charts.

This module provides:

- Summary statistics, grouped summaries, frequency and cross tables
- IQR (boxplot-rule) outlier detection and top/bottom rankings
- Pearson correlation and simple linear regression
- Hypothesis tests (Welch t-test, chi-square independence, one-way ANOVA + Tukey HSD)
- Effect sizes (Cohen's d, Cramér's V, eta squared)
- A deterministic text report and multi-page PDF charts

Public API:
-----------
from statflow import AnalysisPlan, DataSpec, run_analysis

plan = AnalysisPlan(
    data=DataSpec(path="survey.csv"),
    summaries=["Age"],
    two_sample_tests=[("Age", "Gender")],
)
results = run_analysis(plan)
"""

from statflow.stats.api import run_analysis, AnalysisResults
from statflow.stats.config import ChartSpec, VizConfig
from statflow.stats.errors import NotComputableError, GroupCountError

__all__ = [
    "run_analysis",
    "AnalysisResults",
    "ChartSpec",
    "VizConfig",
    "NotComputableError",
    "GroupCountError",
]
