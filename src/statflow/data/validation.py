"""Data validation utilities for statflow."""

from __future__ import annotations

import logging
from typing import Iterable, List, Dict, Any, Optional

import numpy as np

from statflow.data.dataset import Dataset

logger = logging.getLogger(__name__)


def validate_columns(available: Iterable[str], required: Iterable[str]) -> List[str]:
    """
    Validate that required columns exist.

    Parameters
    ----------
    available : Iterable[str]
        Column names present in the data
    required : Iterable[str]
        Column names the caller depends on

    Returns
    -------
    List[str]
        Empty list when all columns are present

    Raises
    ------
    ValueError
        If any required column is missing
    """
    available = list(available)
    missing = [c for c in dict.fromkeys(required) if c not in available]
    if missing:
        raise ValueError(f"Columns not found: {missing}. Available: {sorted(available)[:20]}")
    return []


def generate_missingness_report(
    dataset: Dataset,
    columns: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Generate a report on missing values in the dataset.

    Parameters
    ----------
    dataset : Dataset
        Input dataset
    columns : List[str], optional
        Columns to check; if None, checks all columns

    Returns
    -------
    Dict[str, Any]
        Report containing:
        - total_missing: total count of missing cells
        - missing_counts: dict of {column: count} for every checked column
        - missing_pct: dict of {column: percentage} (NaN for an empty dataset)
        - rows_with_missing: number of rows with any missing value
        - load_issues: dict of {column: cells that failed numeric parsing}
    """
    cols = columns if columns is not None else dataset.columns
    dataset.require(*cols)
    frame = dataset.frame[cols]
    n_rows = len(frame)

    counts = {c: int(frame[c].isna().sum()) for c in cols}
    pct = {c: round(counts[c] / n_rows * 100, 2) if n_rows else np.nan for c in cols}
    rows_with_missing = int(frame.isna().any(axis=1).sum())
    if rows_with_missing:
        logger.debug(f"{rows_with_missing} of {n_rows} rows have missing values")

    return {
        "total_missing": int(sum(counts.values())),
        "missing_counts": counts,
        "missing_pct": pct,
        "cols_with_missing": [c for c in cols if counts[c] > 0],
        "rows_with_missing": rows_with_missing,
        "rows_with_missing_pct": round(rows_with_missing / n_rows * 100, 2) if n_rows else np.nan,
        "load_issues": {c: n for c, n in dataset.load_issues.items() if c in cols},
        "total_cells": int(n_rows * len(cols)),
    }
