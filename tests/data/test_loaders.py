"""Tests for statflow.data.loaders module."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from pathlib import Path

from statflow.data import (
    ColumnKind,
    ColumnSpec,
    DataSpec,
    Dataset,
    load_table,
    load_dataset,
    parse_numeric,
    rename_columns,
    missing_tokens,
    generate_missingness_report,
)


# ============================================================================
# Test parse_numeric
# ============================================================================


class TestParseNumeric:
    """Tests for text -> number parsing."""

    def test_counts_failures_not_blanks(self):
        parsed, n_failed = parse_numeric(pd.Series(["1", " 2.5 ", "x", "", None]))

        assert parsed.iloc[0] == 1.0
        assert parsed.iloc[1] == 2.5
        assert parsed.iloc[2:].isna().all()
        assert n_failed == 1

    def test_decimal_comma(self):
        parsed, n_failed = parse_numeric(pd.Series(["1,5", "2,25"]), decimal=",")

        assert parsed.tolist() == [1.5, 2.25]
        assert n_failed == 0

    def test_keeps_index(self):
        s = pd.Series(["1", "2"], index=[10, 20])
        parsed, _ = parse_numeric(s)
        assert list(parsed.index) == [10, 20]


# ============================================================================
# Test load_table / load_dataset
# ============================================================================


class TestLoadTable:
    """Tests for raw table loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_table(DataSpec(path=tmp_path / "nope.csv"))

    def test_directory_rejected(self, tmp_path):
        with pytest.raises(IsADirectoryError):
            load_table(DataSpec(path=tmp_path))

    def test_missing_tokens_and_trimming(self, write_csv):
        path = write_csv(["a,b", " x ,NA", "y,", "missing,1"])
        df = load_table(DataSpec(path=path, na_values=("", "NA", "missing")))

        assert list(df.columns) == ["a", "b"]
        assert df["a"].iloc[0] == "x"
        assert pd.isna(df["b"].iloc[0])
        assert pd.isna(df["b"].iloc[1])
        assert pd.isna(df["a"].iloc[2])

    def test_duplicate_header_rejected(self, write_csv):
        path = write_csv(["Age;Age;G", "1;2;x"])
        with pytest.raises(ValueError, match=r"Duplicate column names.*\['Age'\]"):
            load_table(DataSpec(path=path, delimiter=";"))

    def test_duplicate_after_trimming_rejected(self, write_csv):
        path = write_csv(["G, G", "a,b"])
        with pytest.raises(ValueError, match="Duplicate column names"):
            load_table(DataSpec(path=path))

    def test_untrimmed_names_kept_apart(self, write_csv):
        path = write_csv(["G, G", "a,b"])
        df = load_table(DataSpec(path=path, trim_whitespace=False))
        assert list(df.columns) == ["G", " G"]


class TestLoadDataset:
    """Tests for typed dataset loading."""

    def test_declared_kinds(self, survey_csv):
        spec = DataSpec(
            path=survey_csv,
            delimiter=";",
            columns=[
                ColumnSpec("Age", ColumnKind.NUMERIC),
                ColumnSpec("Gender", ColumnKind.CATEGORICAL),
            ],
        )
        ds = load_dataset(spec)

        assert ds.n_rows == 8
        assert ds.kind("Age") == ColumnKind.NUMERIC
        assert ds.kind("Gender") == ColumnKind.CATEGORICAL
        assert ds.frame["Age"].dtype == np.float64
        assert ds.frame["Gender"].dtype == "string"
        assert ds.source == survey_csv

    def test_malformed_numeric_cells_counted(self, survey_csv):
        spec = DataSpec(path=survey_csv, delimiter=";", columns=[ColumnSpec("Age", ColumnKind.NUMERIC)])
        ds = load_dataset(spec)

        # "x" fails to parse; "NA" is a missing token, not a failure
        assert ds.load_issues == {"Age": 1}
        assert ds.n_missing("Age") == 2

    def test_undeclared_columns_inferred(self, survey_csv):
        ds = load_dataset(DataSpec(path=survey_csv, delimiter=";"))

        assert ds.kind("ID") == ColumnKind.NUMERIC
        # "x" does not parse, so Age stays categorical when undeclared
        assert ds.kind("Age") == ColumnKind.CATEGORICAL
        assert ds.load_issues == {}

    def test_ordinal_and_decimal_comma(self, yearly_csv):
        spec = DataSpec(
            path=yearly_csv,
            delimiter=";",
            decimal=",",
            columns=[
                ColumnSpec("Year", ColumnKind.ORDINAL),
                ColumnSpec("Germany", ColumnKind.NUMERIC),
            ],
        )
        ds = load_dataset(spec)

        assert ds.frame["Year"].dtype == "Int64"
        assert ds.values("France").tolist() == [1.5, 2.5, 3.0, 4.5, 5.0]
        assert ds.load_issues == {"Germany": 1}

    def test_rename_then_declare(self, survey_csv):
        spec = DataSpec(
            path=survey_csv,
            delimiter=";",
            rename={"Risk_Assessment": "Risk"},
            columns=[ColumnSpec("Risk", ColumnKind.CATEGORICAL)],
        )
        ds = load_dataset(spec)

        assert "Risk" in ds.columns
        assert "Risk_Assessment" not in ds.columns

    def test_declared_column_missing_fails_fast(self, survey_csv):
        spec = DataSpec(path=survey_csv, delimiter=";", columns=[ColumnSpec("Income", ColumnKind.NUMERIC)])
        with pytest.raises(ValueError, match="Income"):
            load_dataset(spec)

    def test_row_ids_are_positions(self, survey_csv):
        ds = load_dataset(DataSpec(path=survey_csv, delimiter=";"))
        assert list(ds.row_ids) == list(range(8))

    def test_identical_input_identical_dataset(self, survey_csv):
        spec = DataSpec(path=survey_csv, delimiter=";", columns=[ColumnSpec("Age", ColumnKind.NUMERIC)])
        a = load_dataset(spec)
        b = load_dataset(spec)
        pd.testing.assert_frame_equal(a.frame, b.frame)


# ============================================================================
# Test helpers
# ============================================================================


def test_rename_columns_missing_source():
    df = pd.DataFrame({"a": [1]})
    with pytest.raises(ValueError, match="Cannot rename"):
        rename_columns(df, {"b": "c"})


def test_rename_columns_duplicate():
    df = pd.DataFrame({"a": [1], "b": [2]})
    with pytest.raises(ValueError, match="duplicate"):
        rename_columns(df, {"a": "b"})


def test_missing_tokens_defaults():
    assert missing_tokens(None) == ("", "NA")
    assert missing_tokens(["NA", "NA", "-"]) == ("NA", "-")


def test_missingness_report(survey_csv):
    spec = DataSpec(path=survey_csv, delimiter=";", columns=[ColumnSpec("Age", ColumnKind.NUMERIC)])
    report = generate_missingness_report(load_dataset(spec))

    assert report["missing_counts"]["Age"] == 2
    assert report["cols_with_missing"] == ["Age"]
    assert report["rows_with_missing"] == 2
    assert report["load_issues"] == {"Age": 1}
    assert report["total_cells"] == 8 * 4


def test_data_spec_validation(tmp_path):
    with pytest.raises(ValueError, match="delimiter"):
        DataSpec(path=tmp_path / "a.csv", delimiter=";;")
    with pytest.raises(ValueError, match="differ"):
        DataSpec(path=tmp_path / "a.csv", delimiter=",", decimal=",")
    with pytest.raises(ValueError, match="Duplicate"):
        DataSpec(path=tmp_path / "a.csv", columns=[ColumnSpec("a"), ColumnSpec("a")])


def test_missingness_report_empty_dataset():
    ds = Dataset.from_frame(pd.DataFrame({"Age": pd.Series([], dtype=float)}))
    report = generate_missingness_report(ds)

    assert report["missing_counts"] == {"Age": 0}
    assert np.isnan(report["missing_pct"]["Age"])
    assert np.isnan(report["rows_with_missing_pct"])
