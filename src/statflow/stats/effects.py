"""Effect size calculations attached to hypothesis test results."""

from __future__ import annotations

from typing import List

import numpy as np


def cohen_d(x: np.ndarray, y: np.ndarray) -> float:
    """Calculate Cohen's d effect size.

    Args:
        x: First group values
        y: Second group values

    Returns:
        Cohen's d (pooled standard deviation)

    Notes:
        Returns NaN if insufficient data or zero variance
    """
    x, y = np.asarray(x, dtype=float), np.asarray(y, dtype=float)
    nx, ny = len(x), len(y)

    if nx < 2 or ny < 2:
        return np.nan

    sx, sy = np.var(x, ddof=1), np.var(y, ddof=1)

    # Pooled variance
    sp2 = ((nx - 1) * sx + (ny - 1) * sy) / (nx + ny - 2)

    if not np.isfinite(sp2) or sp2 <= 0:
        return np.nan

    return float((np.mean(x) - np.mean(y)) / np.sqrt(sp2))


def cramers_v(counts: np.ndarray, chi2: float) -> float:
    """Calculate Cramér's V for a contingency table.

    Args:
        counts: Observed count table (r x c)
        chi2: Chi-square statistic of the table

    Returns:
        V in [0, 1]; NaN for tables smaller than 2 x 2 or without observations
    """
    counts = np.asarray(counts, dtype=float)
    n = counts.sum()
    k = min(counts.shape) - 1

    if n == 0 or k < 1 or not np.isfinite(chi2):
        return np.nan

    return float(np.sqrt(chi2 / (n * k)))


def eta_squared(groups: List[np.ndarray]) -> float:
    """Calculate eta squared (between-group share of total variance) for one-way ANOVA.

    Returns:
        SS_between / SS_total; NaN if total variance is zero
    """
    groups = [np.asarray(g, dtype=float) for g in groups]
    all_values = np.concatenate(groups) if groups else np.array([])

    if len(all_values) == 0:
        return np.nan

    grand_mean = all_values.mean()
    ss_total = float(np.sum((all_values - grand_mean) ** 2))
    ss_between = float(sum(len(g) * (g.mean() - grand_mean) ** 2 for g in groups if len(g) > 0))

    if ss_total == 0:
        return np.nan

    return ss_between / ss_total
