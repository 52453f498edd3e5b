"""Hypothesis tests: Welch two-sample t-test, chi-square independence, one-way ANOVA + Tukey HSD."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multicomp import pairwise_tukeyhsd

from statflow.data.dataset import Dataset
from statflow.stats.descriptive import cross_frequency
from statflow.stats.effects import cohen_d, cramers_v, eta_squared
from statflow.stats.errors import NotComputableError, GroupCountError

logger = logging.getLogger(__name__)

# Significance level that triggers post-hoc comparisons
DEFAULT_ALPHA = 0.05


@dataclass(frozen=True)
class PairwiseComparison:
    """One Tukey HSD comparison (group2 - group1)."""

    group1: str
    group2: str
    mean_diff: float
    p_adj: float
    ci_low: float
    ci_high: float
    reject: bool


@dataclass(frozen=True)
class HypothesisTestResult:
    """Outcome of a hypothesis test.

    Attributes:
        test: Test variant, e.g. "Welch two-sample t-test"
        variables: Columns involved (value/group or the two categorical columns)
        statistic: t, chi-square or F
        df: Degrees of freedom (numerator df for F)
        df2: Denominator df for F, NaN otherwise
        p_value: Two-sided p-value
        n: Observations used (pairwise-complete rows)
        group_sizes: Group label -> n (two-sample and ANOVA)
        group_means: Group label -> mean (two-sample and ANOVA)
        effect_size: Cohen's d, Cramér's V or eta squared
        effect_size_name: Name of the effect size
        posthoc: Tukey HSD comparisons (ANOVA with p < alpha only)
        note: Caveat about the approximation, if any
        reason: Why the test could not be computed; None when it was
    """

    test: str
    variables: Tuple[str, ...]
    statistic: float = np.nan
    df: float = np.nan
    df2: float = np.nan
    p_value: float = np.nan
    n: int = 0
    group_sizes: Dict[str, int] = field(default_factory=dict)
    group_means: Dict[str, float] = field(default_factory=dict)
    effect_size: float = np.nan
    effect_size_name: Optional[str] = None
    posthoc: Tuple[PairwiseComparison, ...] = ()
    note: Optional[str] = None
    reason: Optional[str] = None

    @property
    def computed(self) -> bool:
        return self.reason is None

    def significant(self, alpha: float = DEFAULT_ALPHA) -> bool:
        return self.computed and np.isfinite(self.p_value) and self.p_value < alpha

    @classmethod
    def not_computable(cls, test: str, variables: Tuple[str, ...], reason: str) -> HypothesisTestResult:
        """Explicit result for a test that could not be run."""
        return cls(test=test, variables=tuple(variables), reason=reason)


def _grouped_values(dataset: Dataset, value: str, group: str) -> Tuple[List[str], Dict[str, np.ndarray], pd.DataFrame]:
    """Split the pairwise-complete values of ``value`` by the labels of ``group``.

    Returns:
        (sorted labels, label -> values, long DataFrame with columns value/group)
    """
    x = dataset.values(value)
    g = dataset.labels(group)
    both = x.notna() & g.notna()

    long = pd.DataFrame({"value": x[both].to_numpy(), "group": g[both].astype(str).to_numpy()})
    labels = sorted(long["group"].unique())
    groups = {lab: long.loc[long["group"] == lab, "value"].to_numpy() for lab in labels}
    return labels, groups, long


def welch_df(x: np.ndarray, y: np.ndarray) -> float:
    """Welch–Satterthwaite degrees of freedom."""
    vx = np.var(x, ddof=1) / len(x)
    vy = np.var(y, ddof=1) / len(y)
    denom = vx**2 / (len(x) - 1) + vy**2 / (len(y) - 1)
    if denom == 0:
        return np.nan
    return float((vx + vy) ** 2 / denom)


def two_sample_test(
    dataset: Dataset,
    value: str,
    group: str,
    equal_var: bool = False,
) -> HypothesisTestResult:
    """Two-sample t-test of ``value`` between the two labels of ``group``.

    Welch's unequal-variance test by default; ``equal_var=True`` gives the
    pooled Student test. The difference is first group minus second group in
    sorted label order.

    Raises:
        GroupCountError: If ``group`` does not have exactly two distinct non-missing labels
        NotComputableError: If a group has fewer than 2 values or both groups are constant
    """
    labels, groups, long = _grouped_values(dataset, value, group)

    if len(labels) != 2:
        raise GroupCountError(group, "exactly 2", labels)

    a, b = groups[labels[0]], groups[labels[1]]
    if len(a) < 2 or len(b) < 2:
        raise NotComputableError(
            f"Each group needs at least 2 values: {labels[0]}={len(a)}, {labels[1]}={len(b)}"
        )

    if np.ptp(a) == 0 and np.ptp(b) == 0:
        raise NotComputableError(f"'{value}' is constant within both groups")

    t_stat, p_val = stats.ttest_ind(a, b, equal_var=equal_var)
    df = float(len(a) + len(b) - 2) if equal_var else welch_df(a, b)

    return HypothesisTestResult(
        test="Two-sample t-test (equal variances)" if equal_var else "Welch two-sample t-test",
        variables=(value, group),
        statistic=float(t_stat),
        df=df,
        p_value=float(p_val),
        n=len(long),
        group_sizes={labels[0]: len(a), labels[1]: len(b)},
        group_means={labels[0]: float(np.mean(a)), labels[1]: float(np.mean(b))},
        effect_size=cohen_d(a, b),
        effect_size_name="Cohen's d",
    )


def association_test(dataset: Dataset, column_a: str, column_b: str) -> HypothesisTestResult:
    """Chi-square test of independence on the cross-frequency table of two columns.

    Yates' continuity correction is applied to 2 x 2 tables.

    Raises:
        NotComputableError: If either variable has fewer than two levels, or a
            row/column margin is zero (expected frequencies undefined)
    """
    table = cross_frequency(dataset, column_a, column_b)
    counts = table.counts

    if counts.shape[0] < 2 or counts.shape[1] < 2:
        raise NotComputableError(
            f"Chi-square test needs at least 2 levels per variable, got {counts.shape[0]} x {counts.shape[1]}"
        )

    zero_rows = counts.index[counts.sum(axis=1) == 0].tolist()
    zero_cols = counts.columns[counts.sum(axis=0) == 0].tolist()
    if zero_rows or zero_cols:
        parts = []
        if zero_rows:
            parts.append(f"{column_a} {zero_rows}")
        if zero_cols:
            parts.append(f"{column_b} {zero_cols}")
        raise NotComputableError(f"Zero margin in cross table: {'; '.join(parts)}")

    observed = counts.to_numpy()
    chi2, p_val, dof, expected = stats.chi2_contingency(observed, correction=True)

    note = None
    n_small = int((expected < 5).sum())
    if n_small > 0:
        note = f"{n_small} of {expected.size} expected counts are below 5; the chi-square approximation may be inaccurate"
        logger.warning(f"{column_a} x {column_b}: {note}")

    return HypothesisTestResult(
        test="Pearson chi-square test of independence",
        variables=(column_a, column_b),
        statistic=float(chi2),
        df=float(dof),
        p_value=float(p_val),
        n=table.n,
        effect_size=cramers_v(observed, chi2),
        effect_size_name="Cramér's V",
        note=note,
    )


def tukey_posthoc(long: pd.DataFrame, alpha: float = DEFAULT_ALPHA) -> List[PairwiseComparison]:
    """Perform Tukey HSD post-hoc comparisons between every pair of groups.

    Args:
        long: DataFrame with columns value, group
        alpha: Family-wise significance level

    Returns:
        One PairwiseComparison per pair, in statsmodels' order
    """
    tuk = pairwise_tukeyhsd(endog=long["value"].astype(float), groups=long["group"].astype(str), alpha=alpha)
    res = pd.DataFrame(data=tuk._results_table.data[1:], columns=tuk._results_table.data[0])

    rows = []
    for _, r in res.iterrows():
        rows.append(
            PairwiseComparison(
                group1=str(r["group1"]),
                group2=str(r["group2"]),
                mean_diff=float(r["meandiff"]),
                p_adj=float(r["p-adj"]),
                ci_low=float(r["lower"]),
                ci_high=float(r["upper"]),
                reject=bool(r["reject"]),
            )
        )
    return rows


def variance_test(
    dataset: Dataset,
    value: str,
    group: str,
    alpha: float = DEFAULT_ALPHA,
) -> HypothesisTestResult:
    """One-way ANOVA of ``value`` across every label of ``group``.

    When p < alpha, Tukey HSD comparisons between every pair of groups are
    attached to the result.

    Raises:
        GroupCountError: If fewer than two distinct non-missing labels are present
        NotComputableError: If there are no within-group degrees of freedom or
            the F statistic is undefined
    """
    if not 0 < alpha < 1:
        raise ValueError(f"Alpha must be in (0, 1), got {alpha}")

    labels, groups, long = _grouped_values(dataset, value, group)

    if len(labels) < 2:
        raise GroupCountError(group, "at least 2", labels)

    k = len(labels)
    N = len(long)
    if N - k < 1:
        raise NotComputableError(f"No within-group degrees of freedom: {N} values in {k} groups")

    arrays = [groups[lab] for lab in labels]
    F_stat, p_val = stats.f_oneway(*arrays)
    if not np.isfinite(F_stat):
        raise NotComputableError(f"F statistic is undefined for '{value}' by '{group}' (zero within-group variance)")

    posthoc: Tuple[PairwiseComparison, ...] = ()
    if p_val < alpha:
        logger.info(f"ANOVA {value} ~ {group} significant (p={p_val:.4g}); running Tukey HSD")
        posthoc = tuple(tukey_posthoc(long, alpha))

    return HypothesisTestResult(
        test="One-way ANOVA",
        variables=(value, group),
        statistic=float(F_stat),
        df=float(k - 1),
        df2=float(N - k),
        p_value=float(p_val),
        n=N,
        group_sizes={lab: len(groups[lab]) for lab in labels},
        group_means={lab: float(np.mean(groups[lab])) for lab in labels},
        effect_size=eta_squared(arrays),
        effect_size_name="eta squared",
        posthoc=posthoc,
    )


def run_test(kind: str, dataset: Dataset, a: str, b: str, alpha: float = DEFAULT_ALPHA) -> HypothesisTestResult:
    """Run a named test, turning NotComputableError into an explicit not-computable result.

    Args:
        kind: "two_sample", "association" or "variance"
        dataset: Input dataset
        a: Value column (or first categorical column)
        b: Group column (or second categorical column)
        alpha: Post-hoc threshold for the variance test
    """
    runners = {
        "two_sample": ("Welch two-sample t-test", lambda: two_sample_test(dataset, a, b)),
        "association": ("Pearson chi-square test of independence", lambda: association_test(dataset, a, b)),
        "variance": ("One-way ANOVA", lambda: variance_test(dataset, a, b, alpha)),
    }
    if kind not in runners:
        raise ValueError(f"Unknown test kind '{kind}'. Options: {sorted(runners)}")

    name, runner = runners[kind]
    try:
        return runner()
    except NotComputableError as e:
        logger.warning(f"{name} on {a}/{b} not computable: {e}")
        return HypothesisTestResult.not_computable(name, (a, b), str(e))
