"""Pytest configuration and fixtures."""

import matplotlib

matplotlib.use("Agg")

import pytest
import numpy as np
import pandas as pd
from pathlib import Path

from statflow.data import ColumnKind, ColumnSpec, Dataset


@pytest.fixture
def write_csv(tmp_path):
    """Write text lines to a CSV file under tmp_path and return its path."""

    def _write(lines, name="data.csv"):
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def survey_csv(write_csv):
    """Small semicolon-separated survey export with messy labels and ages."""
    return write_csv(
        [
            "ID;Gender;Age;Risk_Assessment",
            "1;man;30;Low",
            "2;woman;x;High",
            "3;man;40;High",
            "4;female;25;Low",
            "5;male;NA;Low",
            "6;woman;35;High",
            "7;Gender;50;Low",
            "8;male;45;High",
        ],
        name="survey.csv",
    )


@pytest.fixture
def yearly_csv(write_csv):
    """Yearly series with decimal commas and a malformed cell."""
    return write_csv(
        [
            "Year;France;Germany",
            "2015;1,5;2,0",
            "2016;2,5;3,5",
            "2017;3,0;n/a",
            "2018;4,5;5,5",
            "2019;5,0;6,0",
        ],
        name="yearly.csv",
    )


@pytest.fixture
def line_dataset():
    """Exact linear series: Value = 10 * Year - 20190."""
    df = pd.DataFrame({"Year": [2020, 2021, 2022], "Value": [10.0, 20.0, 30.0]})
    return Dataset.from_frame(df, columns=[ColumnSpec("Year", ColumnKind.ORDINAL)])


@pytest.fixture
def grouped_dataset():
    """Numeric score in three clearly separated groups plus a two-level factor."""
    np.random.seed(42)
    groups = np.repeat(["A", "B", "C"], 10)
    score = np.concatenate(
        [
            np.random.normal(10, 1, 10),
            np.random.normal(15, 1, 10),
            np.random.normal(20, 1, 10),
        ]
    )
    sex = np.tile(["f", "m"], 15)
    df = pd.DataFrame({"Group": groups, "Score": score, "Sex": sex})
    return Dataset.from_frame(df)
