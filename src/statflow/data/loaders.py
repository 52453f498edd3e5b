"""Data loading functions for statflow.

This module parses delimited text files into typed ``Dataset`` values. Cell
typing is decided once here; downstream stages never re-infer it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, List, Dict, Tuple, Sequence

import numpy as np
import pandas as pd

from statflow.data.spec import DataSpec, ColumnSpec, ColumnKind
from statflow.data.dataset import Dataset
from statflow.data.validation import validate_columns

logger = logging.getLogger(__name__)


def parse_numeric(s: pd.Series, decimal: str = ".") -> Tuple[pd.Series, int]:
    """
    Parse text cells as numbers.

    Parameters
    ----------
    s : pd.Series
        Raw cells (text, numbers or missing)
    decimal : str
        Decimal mark used in the text

    Returns
    -------
    parsed : pd.Series
        float64 series, NaN where the cell was missing or unparseable
    n_failed : int
        Number of non-missing, non-blank cells that could not be parsed

    Examples
    --------
    >>> parse_numeric(pd.Series(["1,5", "x", None]), decimal=",")[1]
    1
    """
    text = s.astype("string").str.strip()
    if decimal != ".":
        text = text.str.replace(decimal, ".", regex=False)

    present = (text.notna() & (text != "")).fillna(False).astype(bool)
    raw = text.astype(object).where(present, np.nan)
    parsed = pd.to_numeric(raw, errors="coerce").astype("float64")

    n_failed = int((present & parsed.isna()).sum())
    return pd.Series(parsed.to_numpy(), index=s.index, name=s.name), n_failed


def rename_columns(df: pd.DataFrame, mapping: Dict[str, str]) -> pd.DataFrame:
    """
    Rename source columns to canonical names.

    Raises
    ------
    ValueError
        If a source column is missing or a rename would create a duplicate
    """
    if not mapping:
        return df

    missing = [old for old in mapping if old not in df.columns]
    if missing:
        raise ValueError(f"Cannot rename missing column(s) {missing}. Available: {list(df.columns)}")

    renamed = df.rename(columns=mapping)
    if renamed.columns.duplicated().any():
        dupes = renamed.columns[renamed.columns.duplicated()].tolist()
        raise ValueError(f"Renaming produced duplicate column names: {dupes}")

    for old, new in mapping.items():
        logger.info(f"Renamed column '{old}' -> '{new}'")

    return renamed


def check_header(path: Path, spec: DataSpec) -> List[str]:
    """
    Read the raw header row and reject duplicate column names.

    pandas would otherwise mangle duplicates into ``Age``, ``Age.1``.

    Raises
    ------
    ValueError
        If a column name occurs more than once
    """
    header = pd.read_csv(
        path,
        sep=spec.delimiter,
        header=None,
        nrows=1,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
    )
    names = [str(c) for c in header.iloc[0].tolist()]
    if spec.trim_whitespace:
        names = [n.strip() for n in names]

    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ValueError(f"Duplicate column names in header of {path}: {dupes}")
    return names


def load_table(spec: DataSpec) -> pd.DataFrame:
    """
    Read a delimited text file into a raw DataFrame of text cells.

    Missing tokens from ``spec.na_values`` become NaN; no numeric typing is
    applied. Use load_dataset() for a typed Dataset.

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    IsADirectoryError
        If the path is a directory
    ValueError
        If the header row repeats a column name
    """
    path = Path(spec.path)

    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    if path.is_dir():
        raise IsADirectoryError(f"Expected a delimited text file, got a directory: {path}")

    logger.info(f"Loading table from {path} (delimiter={spec.delimiter!r}, decimal={spec.decimal!r})")

    check_header(path, spec)

    df = pd.read_csv(
        path,
        sep=spec.delimiter,
        dtype=str,
        keep_default_na=False,
        na_values=list(spec.na_values),
        skipinitialspace=spec.trim_whitespace,
        usecols=spec.usecols,
        encoding="utf-8-sig",
    )

    if spec.trim_whitespace:
        df.columns = [str(c).strip() for c in df.columns]
        na_tokens = set(spec.na_values)
        for col in df.columns:
            stripped = df[col].astype("string").str.strip()
            df[col] = stripped.where(~stripped.isin(na_tokens), np.nan)

    logger.info(f"Loaded {len(df)} rows, {len(df.columns)} columns")
    return df


def load_dataset(spec: DataSpec) -> Dataset:
    """
    Load and type a dataset.

    This is the main entry point for loading data. It:
    1. Reads the file with the configured delimiter and missing tokens
    2. Applies the explicit rename mapping
    3. Validates that every declared column exists
    4. Parses numeric/ordinal columns (malformed cells become missing and are counted)
    5. Infers undeclared columns once (numeric if every present cell parses)

    Parameters
    ----------
    spec : DataSpec
        Data specification

    Returns
    -------
    Dataset
        Typed dataset; ``load_issues`` holds per-column parse-failure counts

    Raises
    ------
    FileNotFoundError
        If the data file does not exist
    ValueError
        If a declared or renamed column is missing

    Examples
    --------
    >>> spec = DataSpec(
    ...     path=Path("Risk_Assessment_Survey_Dataset.csv"),
    ...     delimiter=";",
    ...     columns=[ColumnSpec("Age", ColumnKind.NUMERIC), ColumnSpec("Gender", ColumnKind.CATEGORICAL)],
    ... )
    >>> dataset = load_dataset(spec)
    """
    raw = load_table(spec)
    raw = rename_columns(raw, spec.rename)

    validate_columns(raw.columns, [c.name for c in spec.columns])

    frame = pd.DataFrame(index=raw.index)
    schema: Dict[str, ColumnSpec] = {}
    load_issues: Dict[str, int] = {}

    for name in raw.columns:
        col_spec = spec.column_spec(name) or _infer_column_spec(raw[name], spec.decimal)
        values, n_failed = _type_column(raw[name], col_spec.kind, spec.decimal)

        if n_failed > 0:
            load_issues[name] = n_failed
            logger.warning(f"Column '{name}': {n_failed} cells could not be parsed as {col_spec.kind.value} and were set to missing")

        frame[name] = values
        schema[name] = col_spec

    dataset = Dataset(frame=frame, schema=schema, source=spec.path, load_issues=load_issues)

    kinds = {k.value: sum(1 for s in schema.values() if s.kind == k) for k in ColumnKind}
    logger.info(f"Prepared dataset: {dataset.n_rows} rows, column kinds {kinds}")

    return dataset


def _infer_column_spec(raw: pd.Series, decimal: str) -> ColumnSpec:
    """Infer the kind of an undeclared column."""
    present = raw.notna().sum()
    _, n_failed = parse_numeric(raw, decimal)
    if present > 0 and n_failed == 0:
        return ColumnSpec(str(raw.name), ColumnKind.NUMERIC)
    return ColumnSpec(str(raw.name), ColumnKind.CATEGORICAL)


def _type_column(raw: pd.Series, kind: ColumnKind, decimal: str) -> Tuple[pd.Series, int]:
    """Convert raw text cells to the dtype backing a column kind."""
    if kind == ColumnKind.CATEGORICAL:
        return raw.astype("string"), 0

    parsed, n_failed = parse_numeric(raw, decimal)
    if kind == ColumnKind.NUMERIC:
        return parsed, n_failed

    non_integral = parsed.notna() & (parsed != np.floor(parsed))
    n_failed += int(non_integral.sum())
    return parsed.mask(non_integral).astype("Int64"), n_failed


def missing_tokens(tokens: Optional[Sequence[str]] = None) -> Tuple[str, ...]:
    """Normalize a user-supplied missing-token list (None -> defaults)."""
    if tokens is None or len(tokens) == 0:
        return ("", "NA")
    return tuple(dict.fromkeys(str(t) for t in tokens))
