"""Dataset container type for statflow."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, List, Dict, Sequence, Iterable

import numpy as np
import pandas as pd

from statflow.data.spec import ColumnKind, ColumnSpec

# pandas dtype backing each column kind; missing is NaN for float64, pd.NA otherwise
KIND_DTYPES = {
    ColumnKind.NUMERIC: "float64",
    ColumnKind.CATEGORICAL: "string",
    ColumnKind.ORDINAL: "Int64",
}


@dataclass(frozen=True)
class Dataset:
    """
    Immutable table of typed columns.

    Every transformation returns a new Dataset; the wrapped frame is copied on
    the way in and must not be modified by callers. The frame index carries the
    original row position so that filtered rows keep their identity.

    Parameters
    ----------
    frame : pd.DataFrame
        Column data, one dtype per declared kind (see ``KIND_DTYPES``)
    schema : Dict[str, ColumnSpec]
        Column name -> spec, in frame column order
    source : Path, optional
        File the data was loaded from
    load_issues : Dict[str, int]
        Column -> number of cells that failed numeric parsing at load

    Examples
    --------
    >>> ds = Dataset.from_frame(pd.DataFrame({"Year": [2020, 2021], "Value": [1.5, 2.0]}))
    >>> ds.kind("Year")
    <ColumnKind.NUMERIC: 'numeric'>
    """

    frame: pd.DataFrame
    schema: Dict[str, ColumnSpec]
    source: Optional[Path] = None
    load_issues: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        """Validate schema/frame consistency."""
        if list(self.schema) != list(self.frame.columns):
            raise ValueError(
                f"Schema columns {list(self.schema)} do not match frame columns {list(self.frame.columns)}"
            )

        if self.frame.columns.duplicated().any():
            dupes = self.frame.columns[self.frame.columns.duplicated()].tolist()
            raise ValueError(f"Duplicate column names: {dupes}")

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        columns: Optional[Sequence[ColumnSpec]] = None,
        source: Optional[Path] = None,
    ) -> Dataset:
        """
        Build a Dataset from a DataFrame, casting declared columns to their kind.

        Undeclared columns are inferred once: numeric dtypes become numeric,
        everything else categorical.
        """
        declared = {c.name: c for c in (columns or [])}
        missing = sorted(set(declared) - set(df.columns))
        if missing:
            raise ValueError(f"Declared columns not found: {missing}")

        frame = pd.DataFrame(index=df.index)
        schema: Dict[str, ColumnSpec] = {}
        for name in df.columns:
            spec = declared.get(name)
            if spec is None:
                kind = ColumnKind.NUMERIC if pd.api.types.is_numeric_dtype(df[name]) else ColumnKind.CATEGORICAL
                spec = ColumnSpec(name, kind)
            frame[name] = cast_series(df[name], spec.kind)
            schema[name] = spec

        return cls(frame=frame, schema=schema, source=source)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def n_rows(self) -> int:
        """Number of rows."""
        return len(self.frame)

    @property
    def columns(self) -> List[str]:
        """Column names in order."""
        return list(self.schema)

    @property
    def row_ids(self) -> pd.Index:
        """Original row positions of the remaining rows."""
        return self.frame.index

    def spec(self, name: str) -> ColumnSpec:
        """Return the spec of a column, failing fast on unknown names."""
        self.require(name)
        return self.schema[name]

    def kind(self, name: str) -> ColumnKind:
        """Return the declared kind of a column."""
        return self.spec(name).kind

    def require(self, *names: str) -> None:
        """
        Raise ValueError if any of the given columns does not exist.

        Raises
        ------
        ValueError
            If a column is missing, listing the available columns
        """
        missing = [n for n in names if n not in self.schema]
        if missing:
            raise ValueError(f"Column(s) {missing} not found. Available: {self.columns}")

    def column(self, name: str) -> pd.Series:
        """Return a column (a copy; missing markers kept)."""
        self.require(name)
        return self.frame[name].copy()

    def values(self, name: str) -> pd.Series:
        """
        Return a quantitative column as float64 with NaN for missing.

        Raises
        ------
        ValueError
            If the column is categorical
        """
        kind = self.kind(name)
        if not kind.is_quantitative:
            raise ValueError(f"Column '{name}' is {kind.value}; a numeric or ordinal column is required")
        s = self.frame[name]
        return pd.Series(s.to_numpy(dtype=float, na_value=np.nan), index=s.index, name=name)

    def labels(self, name: str) -> pd.Series:
        """Return a column as text labels with pd.NA for missing (ordinal values become their text)."""
        self.require(name)
        return self.frame[name].astype("string")

    def n_missing(self, name: str) -> int:
        """Number of missing cells in a column."""
        self.require(name)
        return int(self.frame[name].isna().sum())

    def complete(self, columns: Iterable[str]) -> pd.DataFrame:
        """
        Return the pairwise-complete rows of the given columns.

        Only rows where every listed column is non-missing are kept.
        """
        cols = list(dict.fromkeys(columns))
        self.require(*cols)
        return self.frame[cols].dropna(how="any")

    # ------------------------------------------------------------------
    # Transformations (always return a new Dataset)
    # ------------------------------------------------------------------

    def with_column(self, name: str, values: pd.Series, spec: Optional[ColumnSpec] = None) -> Dataset:
        """Return a new Dataset with a column replaced or appended."""
        if spec is None:
            if name not in self.schema:
                raise ValueError(f"A ColumnSpec is required to add new column '{name}'")
            spec = self.schema[name]
        if len(values) != self.n_rows:
            raise ValueError(f"Column '{name}' has {len(values)} values, dataset has {self.n_rows} rows")

        frame = self.frame.copy()
        frame[name] = cast_series(pd.Series(np.asarray(values, dtype=object), index=frame.index), spec.kind)
        schema = dict(self.schema)
        schema[name] = spec
        schema = {c: schema[c] for c in frame.columns}
        return replace(self, frame=frame, schema=schema)

    def filter_rows(self, mask: pd.Series) -> Dataset:
        """Return a new Dataset with only the rows where mask is True."""
        mask = pd.Series(mask, index=self.frame.index).fillna(False).astype(bool)
        return replace(self, frame=self.frame.loc[mask].copy())

    def select(self, columns: Sequence[str]) -> Dataset:
        """Return a new Dataset restricted to the given columns."""
        self.require(*columns)
        cols = list(columns)
        return replace(self, frame=self.frame[cols].copy(), schema={c: self.schema[c] for c in cols})

    def rename(self, mapping: Dict[str, str]) -> Dataset:
        """Return a new Dataset with columns renamed."""
        self.require(*mapping)
        clash = [new for old, new in mapping.items() if new in self.schema and new not in mapping]
        if clash:
            raise ValueError(f"Renaming would duplicate existing columns: {clash}")

        frame = self.frame.rename(columns=mapping)
        schema = {}
        for old, spec in self.schema.items():
            new = mapping.get(old, old)
            schema[new] = replace(spec, name=new)
        issues = {mapping.get(k, k): v for k, v in self.load_issues.items()}
        return replace(self, frame=frame, schema=schema, load_issues=issues)

    def to_dataframe(self) -> pd.DataFrame:
        """Return a copy of the underlying frame."""
        return self.frame.copy()


def cast_series(s: pd.Series, kind: ColumnKind) -> pd.Series:
    """
    Cast a series to the dtype backing a column kind.

    Numeric and ordinal casts expect already-parsed values; use
    ``statflow.cleaning.CoerceNumericRule`` or ``parse_numeric`` for text.
    """
    kind = ColumnKind(kind)
    if kind == ColumnKind.CATEGORICAL:
        return s.astype(KIND_DTYPES[kind])
    s = s.astype(object).where(s.notna(), np.nan)
    numeric = pd.to_numeric(s, errors="raise").astype(KIND_DTYPES[ColumnKind.NUMERIC])
    if kind == ColumnKind.ORDINAL:
        non_integral = numeric.notna() & (numeric != np.floor(numeric))
        if non_integral.any():
            raise ValueError(f"Ordinal column '{s.name}' has non-integral values: {numeric[non_integral].tolist()[:5]}")
        return numeric.astype(KIND_DTYPES[ColumnKind.ORDINAL])
    return numeric
