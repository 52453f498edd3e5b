"""Correlation and simple linear regression over pairwise-complete rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, Tuple

import numpy as np
from scipy import stats

from statflow.data.dataset import Dataset

logger = logging.getLogger(__name__)

# |r| thresholds for strength banding
STRONG_R = 0.7
MODERATE_R = 0.3


def interpret_correlation(r: float) -> str:
    """Strength band of a correlation: |r| >= 0.7 strong, >= 0.3 moderate, else weak.

    Returns "undefined" for NaN.
    """
    if r is None or not np.isfinite(r):
        return "undefined"
    if abs(r) >= STRONG_R:
        return "strong"
    if abs(r) >= MODERATE_R:
        return "moderate"
    return "weak"


def direction_of(value: float) -> str:
    """Sign of a correlation or slope as "positive", "negative" or "none"."""
    if value is None or not np.isfinite(value):
        return "undefined"
    if value > 0:
        return "positive"
    if value < 0:
        return "negative"
    return "none"


def paired_values(dataset: Dataset, a: str, b: str) -> Tuple[np.ndarray, np.ndarray]:
    """Values of two quantitative columns on the rows where both are present."""
    x = dataset.values(a)
    y = dataset.values(b)
    both = x.notna() & y.notna()
    return x[both].to_numpy(), y[both].to_numpy()


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson correlation between two columns.

    ``coefficient`` is NaN (never zero) when undefined; ``reason`` says why.
    """

    column_a: str
    column_b: str
    n_pairs: int
    coefficient: float = np.nan
    p_value: float = np.nan
    reason: Optional[str] = None

    @property
    def defined(self) -> bool:
        return self.reason is None

    @property
    def strength(self) -> str:
        return interpret_correlation(self.coefficient)

    @property
    def direction(self) -> str:
        return direction_of(self.coefficient)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d.update(strength=self.strength, direction=self.direction)
        return d


def correlate(dataset: Dataset, column_a: str, column_b: str) -> CorrelationResult:
    """Pearson product-moment correlation over pairwise-complete rows.

    Returns an undefined result when fewer than 2 complete pairs exist or
    either column is constant on those pairs.
    """
    x, y = paired_values(dataset, column_a, column_b)
    n = len(x)

    if n < 2:
        return CorrelationResult(column_a, column_b, n, reason=f"needs at least 2 complete pairs, found {n}")

    if np.ptp(x) == 0 or np.ptp(y) == 0:
        const = column_a if np.ptp(x) == 0 else column_b
        return CorrelationResult(column_a, column_b, n, reason=f"'{const}' is constant over the complete pairs")

    r, p = stats.pearsonr(x, y)
    return CorrelationResult(column_a, column_b, n, coefficient=float(r), p_value=float(p))


@dataclass(frozen=True)
class RegressionModel:
    """Simple linear regression ``response = intercept + slope * predictor`` fitted by OLS.

    Attributes:
        response: Response (y) column
        predictor: Predictor (x) column
        n: Number of complete pairs used
        intercept: Fitted intercept
        slope: Fitted slope
        r_squared: Coefficient of determination, 1 - SS_res / SS_tot
        r: Pearson r carrying the slope's sign
        slope_se: Standard error of the slope (NaN for n <= 2)
        intercept_se: Standard error of the intercept (NaN for n <= 2)
        slope_p_value: Two-sided p-value of slope != 0 (t with n - 2 df)
        residual_se: Residual standard error
        reason: Why the model is undefined, if it is
    """

    response: str
    predictor: str
    n: int
    intercept: float = np.nan
    slope: float = np.nan
    r_squared: float = np.nan
    r: float = np.nan
    slope_se: float = np.nan
    intercept_se: float = np.nan
    slope_p_value: float = np.nan
    residual_se: float = np.nan
    reason: Optional[str] = None

    @property
    def defined(self) -> bool:
        return self.reason is None

    @property
    def trend(self) -> str:
        """increasing / decreasing / flat (or undefined)."""
        if not self.defined:
            return "undefined"
        if self.slope > 0:
            return "increasing"
        if self.slope < 0:
            return "decreasing"
        return "flat"

    @property
    def strength(self) -> str:
        return interpret_correlation(self.r)

    @property
    def equation(self) -> str:
        return f"y = {self.slope:.2f}x + {self.intercept:.2f}"

    def predict(self, x):
        """Fitted values for predictor values ``x``."""
        return self.intercept + self.slope * np.asarray(x, dtype=float)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d.update(trend=self.trend, strength=self.strength)
        return d


def fit_linear(dataset: Dataset, response: str, predictor: str) -> RegressionModel:
    """Fit ``response ~ predictor`` by closed-form ordinary least squares.

    Uses pairwise-complete rows only. Undefined when fewer than 2 pairs exist
    or the predictor is constant.
    """
    x, y = paired_values(dataset, predictor, response)
    n = len(x)

    if n < 2:
        return RegressionModel(response, predictor, n, reason=f"needs at least 2 complete pairs, found {n}")

    x_mean = x.mean()
    y_mean = y.mean()
    dx = x - x_mean
    dy = y - y_mean
    sxx = float(np.sum(dx * dx))
    sxy = float(np.sum(dx * dy))
    syy = float(np.sum(dy * dy))

    if sxx == 0:
        return RegressionModel(response, predictor, n, reason=f"predictor '{predictor}' is constant")

    slope = sxy / sxx
    intercept = float(y_mean - slope * x_mean)
    residuals = y - (intercept + slope * x)
    ss_res = float(np.sum(residuals * residuals))

    if syy == 0:
        r_squared = np.nan
        r = np.nan
    else:
        r_squared = 1.0 - ss_res / syy
        r = float(np.sign(slope) * np.sqrt(max(r_squared, 0.0)))

    slope_se = intercept_se = slope_p = residual_se = np.nan
    dof = n - 2
    if dof > 0:
        residual_se = float(np.sqrt(ss_res / dof))
        slope_se = residual_se / np.sqrt(sxx)
        intercept_se = residual_se * np.sqrt(1.0 / n + x_mean**2 / sxx)
        if slope_se > 0:
            t_stat = slope / slope_se
            slope_p = float(2 * stats.t.sf(abs(t_stat), dof))
        else:
            slope_p = 0.0 if slope != 0 else np.nan

    logger.debug(f"OLS {response} ~ {predictor}: n={n}, slope={slope:.6g}, intercept={intercept:.6g}")

    return RegressionModel(
        response=response,
        predictor=predictor,
        n=n,
        intercept=intercept,
        slope=float(slope),
        r_squared=float(r_squared),
        r=r,
        slope_se=float(slope_se),
        intercept_se=float(intercept_se),
        slope_p_value=float(slope_p),
        residual_se=float(residual_se),
    )
