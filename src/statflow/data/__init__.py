"""
Data loading layer for statflow.

Delimited text files are parsed into immutable, typed ``Dataset`` values:

- numeric columns -> float64 with NaN as the missing marker
- categorical columns -> pandas ``string`` dtype with pd.NA
- ordinal columns (e.g. years) -> nullable ``Int64``

Example usage:
    from statflow.data import DataSpec, ColumnSpec, ColumnKind, load_dataset

    spec = DataSpec(
        path=Path("Environmental_Deaths_Heat_Cold.csv"),
        delimiter=";",
        columns=[ColumnSpec("Year", ColumnKind.ORDINAL)],
    )
    dataset = load_dataset(spec)
"""

from statflow.data.spec import DataSpec, ColumnSpec, ColumnKind
from statflow.data.dataset import Dataset, cast_series
from statflow.data.loaders import (
    load_table,
    load_dataset,
    parse_numeric,
    rename_columns,
    missing_tokens,
)
from statflow.data.validation import (
    validate_columns,
    generate_missingness_report,
)

__all__ = [
    # Core types
    "DataSpec",
    "ColumnSpec",
    "ColumnKind",
    "Dataset",
    "cast_series",
    # Loaders
    "load_table",
    "load_dataset",
    "parse_numeric",
    "rename_columns",
    "missing_tokens",
    # Validation
    "validate_columns",
    "generate_missingness_report",
]
