"""Descriptive statistics, frequency tables and outlier detection."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional, Tuple, Hashable

import numpy as np
import pandas as pd

from statflow.data.dataset import Dataset
from statflow.data.spec import ColumnKind
from statflow.stats.errors import NotComputableError

# Boxplot fence multiplier
IQR_FACTOR = 1.5


@dataclass(frozen=True)
class SummaryStatistics:
    """Summary of the non-missing values of one column.

    Every statistic is NaN when no value is present; sd is NaN for n == 1.
    """

    column: str
    n: int
    n_missing: int
    mean: float
    sd: float
    median: float
    min: float
    q1: float
    q3: float
    max: float

    @property
    def defined(self) -> bool:
        return self.n > 0

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def describe_values(x: np.ndarray, column: str = "", n_missing: int = 0) -> SummaryStatistics:
    """Compute SummaryStatistics for an array; NaNs are dropped first.

    Args:
        x: Values (NaN = missing)
        column: Column name recorded in the result
        n_missing: Missing count to add to the NaNs found in ``x``

    Returns:
        SummaryStatistics (quartiles by linear interpolation)
    """
    x = np.asarray(x, dtype=float)
    valid = x[~np.isnan(x)]
    n_valid = len(valid)
    n_missing = n_missing + (len(x) - n_valid)

    if n_valid > 0:
        mean_val = float(np.mean(valid))
        sd_val = float(np.std(valid, ddof=1)) if n_valid > 1 else np.nan
        median_val = float(np.median(valid))
        min_val = float(np.min(valid))
        max_val = float(np.max(valid))
        q1 = float(np.percentile(valid, 25))
        q3 = float(np.percentile(valid, 75))
    else:
        mean_val = sd_val = median_val = min_val = max_val = q1 = q3 = np.nan

    return SummaryStatistics(
        column=column,
        n=n_valid,
        n_missing=n_missing,
        mean=mean_val,
        sd=sd_val,
        median=median_val,
        min=min_val,
        q1=q1,
        q3=q3,
        max=max_val,
    )


def summarize(dataset: Dataset, column: str) -> SummaryStatistics:
    """Summary statistics of a numeric/ordinal column over its non-missing values."""
    return describe_values(dataset.values(column).to_numpy(), column)


def level_order(dataset: Dataset, column: str, present: pd.Series, keep_declared: bool = False) -> List[Hashable]:
    """Levels in declared order (allowed labels first), then any other observed labels sorted."""
    seen = set(present.unique())
    allowed = dataset.spec(column).allowed
    if allowed is None:
        return sorted(seen)
    declared = [g for g in allowed if keep_declared or g in seen]
    return declared + sorted(seen - set(allowed))


def summarize_by(dataset: Dataset, column: str, by: str) -> Dict[Hashable, SummaryStatistics]:
    """Summary statistics of ``column`` per label of ``by``.

    Only rows where both columns are present are used; each group is computed
    from its own values alone. Rows with a missing group label belong to no
    group; rows with a missing value are counted in the group's n_missing.

    Returns:
        Ordered mapping group label -> SummaryStatistics
    """
    x = dataset.values(column)
    groups = dataset.labels(by) if dataset.kind(by) == ColumnKind.CATEGORICAL else dataset.column(by)
    has_group = groups.notna()

    result = {}
    for g in level_order(dataset, by, groups[has_group]):
        in_group = has_group & (groups == g).fillna(False).astype(bool)
        result[g] = describe_values(x[in_group].to_numpy(), column)
    return result


def group_means(dataset: Dataset, column: str, by: str) -> pd.DataFrame:
    """Mean of ``column`` per group, e.g. year-over-year averages.

    Returns:
        DataFrame with columns: group, n, mean
    """
    rows = [
        {"group": g, "n": s.n, "mean": s.mean}
        for g, s in summarize_by(dataset, column, by).items()
    ]
    return pd.DataFrame(rows, columns=["group", "n", "mean"])


def frequency(dataset: Dataset, column: str, include_missing: bool = False) -> pd.DataFrame:
    """Frequency table of a column.

    Labels are ordered by the declared allowed labels, else sorted. Percentages
    are over non-missing values; with ``include_missing`` a trailing row
    labelled None holds the missing count (percent over all rows).

    Returns:
        DataFrame with columns: label, count, percent
    """
    s = dataset.column(column)
    present = s.dropna()
    n_present = len(present)
    counts = present.value_counts()

    rows = []
    for label in level_order(dataset, column, present, keep_declared=True):
        cnt = int(counts.get(label, 0))
        rows.append({"label": label, "count": cnt, "percent": cnt / n_present * 100 if n_present else np.nan})

    if include_missing:
        n_missing = len(s) - n_present
        rows.append({"label": None, "count": n_missing, "percent": n_missing / len(s) * 100 if len(s) else np.nan})

    table = pd.DataFrame(rows, columns=["label", "count", "percent"])
    # keep labels as-is (no float upcast of integer labels next to None)
    table["label"] = pd.Series([r["label"] for r in rows], dtype=object)
    return table


@dataclass(frozen=True)
class CrossTable:
    """Two-way count table and its row-normalised percentages.

    Attributes:
        row_column: Column giving the rows
        col_column: Column giving the columns
        counts: DataFrame of counts (index = row labels, columns = column labels)
        row_percent: counts / row total * 100 (NaN for an empty row)
    """

    row_column: str
    col_column: str
    counts: pd.DataFrame
    row_percent: pd.DataFrame

    @property
    def n(self) -> int:
        return int(self.counts.to_numpy().sum())


def cross_frequency(dataset: Dataset, row_column: str, col_column: str) -> CrossTable:
    """Cross-tabulate two columns over their pairwise-complete rows.

    Declared allowed labels are kept as rows/columns even when they never
    occur, so zero margins stay visible to the association test.
    """
    complete = dataset.complete([row_column, col_column])
    rows = complete[row_column]
    cols = complete[col_column]

    counts = pd.crosstab(rows, cols)

    row_order = level_order(dataset, row_column, rows, keep_declared=True)
    col_order = level_order(dataset, col_column, cols, keep_declared=True)
    counts = counts.reindex(index=row_order, columns=col_order, fill_value=0).astype(int)
    counts.index.name = row_column
    counts.columns.name = col_column

    totals = counts.sum(axis=1)
    row_percent = counts.div(totals.replace(0, np.nan), axis=0) * 100

    return CrossTable(row_column=row_column, col_column=col_column, counts=counts, row_percent=row_percent)


@dataclass(frozen=True)
class OutlierSet:
    """Values beyond the boxplot fences, with their originating rows.

    Attributes:
        column: Measured column
        q1, q3, iqr: Quartiles of the non-missing values
        lower_fence: q1 - 1.5 * iqr
        upper_fence: q3 + 1.5 * iqr
        values: Outlying values in row order
        row_ids: Row identifier for each value (row position or id-column value)
    """

    column: str
    q1: float
    q3: float
    iqr: float
    lower_fence: float
    upper_fence: float
    values: Tuple[float, ...] = ()
    row_ids: Tuple[Any, ...] = ()

    @property
    def count(self) -> int:
        return len(self.values)

    def pairs(self) -> List[Tuple[Any, float]]:
        return list(zip(self.row_ids, self.values))


def outliers(dataset: Dataset, column: str, id_column: Optional[str] = None) -> OutlierSet:
    """Detect outliers with the boxplot convention.

    A value is an outlier if it is below Q1 - 1.5·IQR or above Q3 + 1.5·IQR.

    Args:
        dataset: Input dataset
        column: Numeric/ordinal column
        id_column: Optional column used to identify rows (defaults to row position)

    Raises:
        NotComputableError: If the column has no non-missing values
    """
    x = dataset.values(column).dropna()
    if len(x) == 0:
        raise NotComputableError(f"No non-missing values in '{column}'")

    q1 = float(np.percentile(x, 25))
    q3 = float(np.percentile(x, 75))
    iqr = q3 - q1
    lower = q1 - IQR_FACTOR * iqr
    upper = q3 + IQR_FACTOR * iqr

    out = x[(x < lower) | (x > upper)]
    if id_column is not None:
        ids = dataset.column(id_column).loc[out.index]
        row_ids = tuple(None if pd.isna(v) else v for v in ids.tolist())
    else:
        row_ids = tuple(int(i) for i in out.index)

    return OutlierSet(
        column=column,
        q1=q1,
        q3=q3,
        iqr=iqr,
        lower_fence=lower,
        upper_fence=upper,
        values=tuple(float(v) for v in out),
        row_ids=row_ids,
    )


def top_bottom(
    dataset: Dataset,
    column: str,
    label_column: str,
    n: int = 5,
    where: Optional[Tuple[str, Any]] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Rank rows by a numeric column and return the top and bottom ``n``.

    Args:
        dataset: Input dataset
        column: Numeric column to rank by (missing values excluded)
        label_column: Column identifying each row (e.g. country)
        n: Number of rows in each list
        where: Optional (column, value) restriction, e.g. ("Year", 2022)

    Returns:
        (top, bottom) DataFrames with columns [label_column, column], both sorted descending
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")

    frame = pd.DataFrame({label_column: dataset.column(label_column), column: dataset.values(column)})
    if where is not None:
        wcol, wval = where
        w = dataset.column(wcol)
        frame = frame[(w == wval).fillna(False).astype(bool)]

    ranked = frame.dropna(subset=[column]).sort_values(column, ascending=False, kind="mergesort")
    return ranked.head(n).reset_index(drop=True), ranked.tail(n).reset_index(drop=True)
