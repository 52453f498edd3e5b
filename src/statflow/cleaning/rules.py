"""Cleaning rules: named transformations of one column (or of the row set)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Tuple, Sequence

import numpy as np
import pandas as pd

from statflow.data.dataset import Dataset
from statflow.data.loaders import parse_numeric
from statflow.data.spec import ColumnKind, ColumnSpec


@dataclass(frozen=True)
class CleaningStep:
    """Observable outcome of one applied rule.

    Attributes:
        rule: Rule kind (remap, invalidate, coerce, range, validity, derive, require, keep)
        column: Column (or comma-joined columns) the rule acted on
        description: Human-readable summary of the rule
        changed: Number of cells rewritten
        new_missing: Number of cells newly set to missing
        rows_before: Row count before the rule
        rows_after: Row count after the rule
    """

    rule: str
    column: str
    description: str
    changed: int = 0
    new_missing: int = 0
    rows_before: int = 0
    rows_after: int = 0

    @property
    def rows_removed(self) -> int:
        return self.rows_before - self.rows_after


class CleaningRule:
    """Base class for cleaning rules.

    Subclasses implement ``apply`` and return a new Dataset together with the
    CleaningStep describing what changed. Inputs are never mutated.
    """

    kind: str = "rule"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        raise NotImplementedError

    def describe(self) -> str:
        return self.kind

    def _step(self, dataset: Dataset, column: str, **counts) -> CleaningStep:
        n = dataset.n_rows
        counts.setdefault("rows_before", n)
        counts.setdefault("rows_after", n)
        return CleaningStep(rule=self.kind, column=column, description=self.describe(), **counts)


def _require_categorical(dataset: Dataset, column: str, kind: str) -> None:
    if dataset.kind(column) != ColumnKind.CATEGORICAL:
        raise ValueError(f"{kind} rule needs a categorical column; '{column}' is {dataset.kind(column).value}")


def _require_quantitative(dataset: Dataset, column: str, kind: str) -> None:
    if not dataset.kind(column).is_quantitative:
        raise ValueError(f"{kind} rule needs a numeric or ordinal column; '{column}' is categorical")


@dataclass
class RemapRule(CleaningRule):
    """Exact, case-sensitive label replacement on one categorical column.

    Example: ``RemapRule("Gender", {"man": "male", "woman": "female"})``
    """

    column: str
    mapping: Dict[str, str]
    kind = "remap"

    def describe(self) -> str:
        pairs = ", ".join(f"{k!r}->{v!r}" for k, v in self.mapping.items())
        return f"remap {self.column}: {pairs}"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        _require_categorical(dataset, self.column, "Remap")
        s = dataset.column(self.column)
        matched = s.isin(list(self.mapping)).fillna(False).astype(bool)

        out = s.mask(matched, s.map(self.mapping))

        step = self._step(dataset, self.column, changed=int(matched.sum()))
        return dataset.with_column(self.column, out), step


@dataclass
class InvalidateRule(CleaningRule):
    """Set matching values to missing.

    For categorical columns ``values`` are labels; for numeric/ordinal columns
    they are compared as numbers. ``header_fragment=True`` also invalidates a
    literal label equal to the column name (a mis-parsed header row).
    """

    column: str
    values: Sequence = ()
    header_fragment: bool = False
    kind = "invalidate"

    def describe(self) -> str:
        targets = [repr(v) for v in self.values]
        if self.header_fragment:
            targets.append("<header fragment>")
        return f"invalidate {self.column}: {', '.join(targets)}"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        s = dataset.column(self.column)

        if dataset.kind(self.column) == ColumnKind.CATEGORICAL:
            targets = [str(v) for v in self.values]
            if self.header_fragment:
                targets.append(self.column)
            hit = s.isin(targets)
        else:
            targets = [float(v) for v in self.values]
            hit = dataset.values(self.column).isin(targets)

        hit = hit.fillna(False).astype(bool) & s.notna()
        step = self._step(dataset, self.column, changed=int(hit.sum()), new_missing=int(hit.sum()))
        return dataset.with_column(self.column, s.mask(hit)), step


@dataclass
class CoerceNumericRule(CleaningRule):
    """Parse a column as numbers; unparseable values become missing.

    The number of newly introduced missing values is reported. ``into`` writes
    the parsed values to a new column and keeps the original.
    """

    column: str
    decimal: str = "."
    ordinal: bool = False
    into: Optional[str] = None
    kind = "coerce"

    def describe(self) -> str:
        target = f" into {self.into}" if self.into else ""
        return f"coerce {self.column} to {'ordinal' if self.ordinal else 'numeric'}{target}"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        s = dataset.column(self.column)
        before_missing = int(s.isna().sum())

        if dataset.kind(self.column).is_quantitative:
            parsed = dataset.values(self.column)
        else:
            parsed, _ = parse_numeric(s, self.decimal)

        kind = ColumnKind.NUMERIC
        if self.ordinal:
            kind = ColumnKind.ORDINAL
            parsed = parsed.mask(parsed.notna() & (parsed != np.floor(parsed)))

        new_missing = int(parsed.isna().sum()) - before_missing
        target = self.into or self.column
        step = self._step(dataset, target, changed=int(parsed.notna().sum()), new_missing=new_missing)
        return dataset.with_column(target, parsed, ColumnSpec(target, kind)), step


@dataclass
class RangeRule(CleaningRule):
    """Set numeric values outside [lower, upper] (inclusive) or in ``exclude`` to missing.

    Example: posts outside 1..20 treated as implausible:
    ``RangeRule("Posts", lower=1, upper=20, exclude=(0,), into="Posts2")``
    """

    column: str
    lower: Optional[float] = None
    upper: Optional[float] = None
    exclude: Sequence[float] = ()
    into: Optional[str] = None
    kind = "range"

    def __post_init__(self):
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError(f"RangeRule on '{self.column}': lower {self.lower} exceeds upper {self.upper}")

    def describe(self) -> str:
        parts = []
        if self.lower is not None:
            parts.append(f">= {self.lower:g}")
        if self.upper is not None:
            parts.append(f"<= {self.upper:g}")
        if self.exclude:
            parts.append("not in " + ", ".join(f"{v:g}" for v in self.exclude))
        target = f" into {self.into}" if self.into else ""
        return f"keep {self.column} {' and '.join(parts) or 'unchanged'}{target}"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        _require_quantitative(dataset, self.column, "Range")
        x = dataset.values(self.column)

        bad = pd.Series(False, index=x.index)
        if self.lower is not None:
            bad |= x < self.lower
        if self.upper is not None:
            bad |= x > self.upper
        if self.exclude:
            bad |= x.isin([float(v) for v in self.exclude])
        bad &= x.notna()

        target = self.into or self.column
        spec = ColumnSpec(target, dataset.kind(self.column))
        step = self._step(dataset, target, changed=int(bad.sum()), new_missing=int(bad.sum()))
        return dataset.with_column(target, dataset.column(self.column).mask(bad), spec), step


@dataclass
class ValidityRule(CleaningRule):
    """Apply the column's declared validity predicate (allowed labels or valid range)."""

    column: str
    kind = "validity"

    def describe(self) -> str:
        return f"validate {self.column} against its declared predicate"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        spec = dataset.spec(self.column)
        s = dataset.column(self.column)

        if spec.allowed is not None:
            bad = ~s.isin(list(spec.allowed)).fillna(False).astype(bool)
        elif spec.valid_range is not None:
            low, high = spec.valid_range
            x = dataset.values(self.column)
            bad = (x < low) | (x > high)
        else:
            bad = pd.Series(False, index=s.index)

        bad = bad & s.notna()
        step = self._step(dataset, self.column, changed=int(bad.sum()), new_missing=int(bad.sum()))
        return dataset.with_column(self.column, s.mask(bad)), step


@dataclass
class DeriveRule(CleaningRule):
    """Add a numeric column computed from a pandas eval expression over quantitative columns.

    Missing inputs propagate to a missing result. Column names that are not
    identifiers must be back-quoted, e.g. ``"`Telephones.per.100` * 2"``.

    Example: ``DeriveRule("Total_Deaths", "France + Germany")``
    """

    column: str
    expression: str
    kind = "derive"

    def describe(self) -> str:
        return f"derive {self.column} = {self.expression}"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        quantitative = [c for c in dataset.columns if dataset.kind(c).is_quantitative]
        frame = pd.DataFrame({c: dataset.values(c) for c in quantitative}, index=dataset.row_ids)

        try:
            result = frame.eval(self.expression, engine="python")
        except (NameError, KeyError, SyntaxError) as e:
            raise ValueError(f"Cannot derive '{self.column}' from {self.expression!r}: {e}") from e

        if np.isscalar(result):
            result = pd.Series(float(result), index=frame.index)
        result = pd.Series(np.asarray(result, dtype=float), index=frame.index)

        step = self._step(dataset, self.column, changed=int(result.notna().sum()), new_missing=int(result.isna().sum()))
        return dataset.with_column(self.column, result, ColumnSpec(self.column, ColumnKind.NUMERIC)), step


@dataclass
class RequireRule(CleaningRule):
    """Drop rows missing a value in any of the required columns."""

    columns: List[str] = field(default_factory=list)
    kind = "require"

    def describe(self) -> str:
        return f"require {', '.join(self.columns)}"

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        dataset.require(*self.columns)
        keep = dataset.frame[self.columns].notna().all(axis=1)
        out = dataset.filter_rows(keep)
        step = self._step(dataset, ", ".join(self.columns), rows_after=out.n_rows)
        return out, step


@dataclass
class KeepRowsRule(CleaningRule):
    """Content-based row filter: keep rows whose value satisfies every given condition.

    Rows with a missing value in ``column`` are dropped.

    Examples:
        ``KeepRowsRule("Year", minimum=2020)``
        ``KeepRowsRule("Commute_Method", labels=("Bicycle", "Car"))``
    """

    column: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    labels: Optional[Sequence[str]] = None
    kind = "keep"

    def describe(self) -> str:
        parts = []
        if self.minimum is not None:
            parts.append(f"{self.column} >= {self.minimum:g}")
        if self.maximum is not None:
            parts.append(f"{self.column} <= {self.maximum:g}")
        if self.labels is not None:
            parts.append(f"{self.column} in {list(self.labels)}")
        return "keep rows where " + (" and ".join(parts) or f"{self.column} is present")

    def apply(self, dataset: Dataset) -> Tuple[Dataset, CleaningStep]:
        s = dataset.column(self.column)
        keep = s.notna()

        if self.minimum is not None or self.maximum is not None:
            _require_quantitative(dataset, self.column, "Keep-rows range")
            x = dataset.values(self.column)
            if self.minimum is not None:
                keep &= x >= self.minimum
            if self.maximum is not None:
                keep &= x <= self.maximum

        if self.labels is not None:
            keep &= dataset.labels(self.column).isin([str(v) for v in self.labels]).fillna(False).astype(bool)

        out = dataset.filter_rows(keep)
        step = self._step(dataset, self.column, rows_after=out.n_rows)
        return out, step
