"""Tests for the immutable Dataset container."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from statflow.data import ColumnKind, ColumnSpec, Dataset, cast_series
from statflow.data.dataset import KIND_DTYPES


@pytest.fixture
def small_dataset():
    df = pd.DataFrame(
        {
            "Year": [2020, 2021, 2022, 2023],
            "Value": [1.0, np.nan, 3.0, 4.0],
            "Label": ["a", None, "b", "a"],
        }
    )
    return Dataset.from_frame(df, columns=[ColumnSpec("Year", ColumnKind.ORDINAL)])


class TestDatasetConstruction:
    def test_kinds_and_dtypes(self, small_dataset):
        assert small_dataset.kind("Year") == ColumnKind.ORDINAL
        assert small_dataset.kind("Value") == ColumnKind.NUMERIC
        assert small_dataset.kind("Label") == ColumnKind.CATEGORICAL
        assert small_dataset.frame["Year"].dtype == "Int64"
        assert small_dataset.frame["Label"].dtype == "string"

    def test_schema_must_match_frame(self):
        with pytest.raises(ValueError, match="Schema columns"):
            Dataset(frame=pd.DataFrame({"a": [1.0]}), schema={"b": ColumnSpec("b")})

    def test_declared_missing_column(self):
        with pytest.raises(ValueError, match="not found"):
            Dataset.from_frame(pd.DataFrame({"a": [1.0]}), columns=[ColumnSpec("b")])


class TestDatasetAccess:
    def test_unknown_column_fails_fast(self, small_dataset):
        with pytest.raises(ValueError, match="not found"):
            small_dataset.column("Nope")

    def test_values_rejects_categorical(self, small_dataset):
        with pytest.raises(ValueError, match="categorical"):
            small_dataset.values("Label")

    def test_values_are_float_with_nan(self, small_dataset):
        v = small_dataset.values("Year")
        assert v.dtype == np.float64
        assert v.tolist() == [2020.0, 2021.0, 2022.0, 2023.0]

    def test_complete_rows(self, small_dataset):
        complete = small_dataset.complete(["Value", "Label"])
        assert list(complete.index) == [0, 2, 3]

    def test_n_missing(self, small_dataset):
        assert small_dataset.n_missing("Value") == 1
        assert small_dataset.n_missing("Label") == 1


class TestDatasetTransformations:
    def test_with_column_does_not_mutate(self, small_dataset):
        new = small_dataset.with_column("Value", pd.Series([9.0, 9.0, 9.0, 9.0]))

        assert new.values("Value").tolist() == [9.0] * 4
        assert np.isnan(small_dataset.values("Value").iloc[1])

    def test_with_new_column_requires_spec(self, small_dataset):
        with pytest.raises(ValueError, match="ColumnSpec"):
            small_dataset.with_column("Other", pd.Series([1, 2, 3, 4]))

        new = small_dataset.with_column("Other", pd.Series([1, 2, 3, 4]), ColumnSpec("Other"))
        assert new.columns[-1] == "Other"

    def test_with_column_length_mismatch(self, small_dataset):
        with pytest.raises(ValueError, match="values"):
            small_dataset.with_column("Value", pd.Series([1.0]))

    def test_filter_rows_keeps_row_identity(self, small_dataset):
        filtered = small_dataset.filter_rows(small_dataset.values("Value") > 2)

        assert filtered.n_rows == 2
        assert list(filtered.row_ids) == [2, 3]
        assert small_dataset.n_rows == 4

    def test_rename(self, small_dataset):
        renamed = small_dataset.rename({"Label": "Group"})

        assert renamed.columns == ["Year", "Value", "Group"]
        assert renamed.spec("Group").name == "Group"
        with pytest.raises(ValueError, match="duplicate"):
            small_dataset.rename({"Label": "Value"})

    def test_select(self, small_dataset):
        assert small_dataset.select(["Label"]).columns == ["Label"]


def test_cast_series_ordinal_rejects_fractions():
    with pytest.raises(ValueError, match="non-integral"):
        cast_series(pd.Series([1.0, 2.5], name="Year"), ColumnKind.ORDINAL)


def test_column_spec_validation():
    with pytest.raises(ValueError, match="categorical"):
        ColumnSpec("Age", ColumnKind.NUMERIC, allowed=("a",))
    with pytest.raises(ValueError, match="numeric"):
        ColumnSpec("Gender", ColumnKind.CATEGORICAL, valid_range=(0, 1))
    with pytest.raises(ValueError, match="exceeds"):
        ColumnSpec("Age", ColumnKind.NUMERIC, valid_range=(10, 1))

    spec = ColumnSpec("Age", "numeric", valid_range=(0, 120))
    assert spec.kind == ColumnKind.NUMERIC
    assert spec.valid_range == (0.0, 120.0)


@pytest.mark.parametrize(
    "kind,values",
    [
        (ColumnKind.NUMERIC, [1.5, None]),
        (ColumnKind.CATEGORICAL, ["a", None]),
        (ColumnKind.ORDINAL, [2020, None]),
    ],
)
def test_cast_series_uses_kind_dtype(kind, values):
    s = cast_series(pd.Series(values, dtype=object), kind)

    assert s.dtype == KIND_DTYPES[kind]
    assert s.isna().tolist() == [False, True]
