"""Data specification types for statflow data loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple, Sequence


class ColumnKind(str, Enum):
    """Declared value kind of a column."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    ORDINAL = "ordinal"

    @property
    def is_quantitative(self) -> bool:
        """Whether values of this kind take part in arithmetic."""
        return self in (ColumnKind.NUMERIC, ColumnKind.ORDINAL)


@dataclass(frozen=True)
class ColumnSpec:
    """
    Declared column: name, value kind and optional validity predicate.

    Parameters
    ----------
    name : str
        Column name after renaming
    kind : ColumnKind
        Declared value kind
    allowed : Sequence[str], optional
        Allowed labels for categorical columns; also fixes the level order
        used by frequency and cross tables
    valid_range : Tuple[float, float], optional
        Inclusive plausible range for numeric/ordinal columns

    Examples
    --------
    >>> ColumnSpec("Gender", ColumnKind.CATEGORICAL, allowed=("female", "male", "diverse"))
    >>> ColumnSpec("Age", ColumnKind.NUMERIC, valid_range=(16, 99))
    """

    name: str
    kind: ColumnKind = ColumnKind.NUMERIC
    allowed: Optional[Tuple[str, ...]] = None
    valid_range: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        kind = ColumnKind(self.kind)
        object.__setattr__(self, "kind", kind)

        if self.allowed is not None:
            if kind != ColumnKind.CATEGORICAL:
                raise ValueError(f"Column '{self.name}': allowed labels only apply to categorical columns")
            object.__setattr__(self, "allowed", tuple(str(a) for a in self.allowed))

        if self.valid_range is not None:
            if not kind.is_quantitative:
                raise ValueError(f"Column '{self.name}': valid_range only applies to numeric/ordinal columns")
            low, high = self.valid_range
            if low > high:
                raise ValueError(f"Column '{self.name}': valid_range lower bound {low} exceeds upper bound {high}")
            object.__setattr__(self, "valid_range", (float(low), float(high)))


@dataclass
class DataSpec:
    """
    Specification for loading a delimited text dataset.

    Parameters
    ----------
    path : Path
        Path to the delimited text file (header row required)
    delimiter : str
        Field delimiter (default ",")
    decimal : str
        Decimal mark used in numeric cells (default ".")
    na_values : Sequence[str]
        Tokens read as missing (default: empty string and "NA")
    trim_whitespace : bool
        Strip leading/trailing whitespace from cells and header names
    columns : List[ColumnSpec], optional
        Declared columns; undeclared columns are inferred once at load
    rename : Dict[str, str], optional
        Source name -> canonical name, applied right after parsing
    usecols : List[str], optional
        Subset of source columns to read

    Examples
    --------
    >>> spec = DataSpec(
    ...     path=Path("Entry_Survey.csv"),
    ...     delimiter=";",
    ...     decimal=",",
    ...     na_values=("", "NA", "2much", "many"),
    ... )
    """

    path: Path
    delimiter: str = ","
    decimal: str = "."
    na_values: Sequence[str] = ("", "NA")
    trim_whitespace: bool = True
    columns: List[ColumnSpec] = field(default_factory=list)
    rename: Dict[str, str] = field(default_factory=dict)
    usecols: Optional[List[str]] = None

    def __post_init__(self):
        """Validate and normalize specification."""
        self.path = Path(self.path)
        self.na_values = tuple(self.na_values)

        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")

        if len(self.decimal) != 1:
            raise ValueError(f"decimal must be a single character, got {self.decimal!r}")

        if self.decimal == self.delimiter:
            raise ValueError("decimal mark and delimiter must differ")

        names = [c.name for c in self.columns]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate column declarations: {dupes}")

    def column_spec(self, name: str) -> Optional[ColumnSpec]:
        """Return the declared spec for a column, if any."""
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert spec to dictionary for logging/manifests."""
        return {
            "path": str(self.path),
            "delimiter": self.delimiter,
            "decimal": self.decimal,
            "na_values": list(self.na_values),
            "columns": {c.name: c.kind.value for c in self.columns},
            "rename": dict(self.rename),
        }
