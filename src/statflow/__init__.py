"""
statflow: linear statistical analysis pipeline for small survey and time-series datasets.

This package provides:
- Delimited-text loading with declared column kinds and configurable missing tokens
- Ordered, logged cleaning rules (remap, invalidate, coerce, filter, derive)
- Descriptive statistics, frequency tables and IQR outlier detection
- Correlation, simple linear regression and hypothesis tests (Welch, chi-square, ANOVA + Tukey)
- Deterministic text reports and PDF chart export
- A Typer CLI
"""

__version__ = "0.1.0"

from statflow.config import AnalysisPlan
from statflow.data import ColumnKind, ColumnSpec, DataSpec, Dataset, load_dataset
from statflow.stats.api import run_analysis

__all__ = [
    "__version__",
    "AnalysisPlan",
    "ColumnKind",
    "ColumnSpec",
    "DataSpec",
    "Dataset",
    "load_dataset",
    "run_analysis",
]
