"""Tests for effect size calculations."""

import numpy as np
import pytest

from statflow.stats.effects import cohen_d, cramers_v, eta_squared


def test_cohen_d_known_value():
    x = np.array([2.0, 4.0, 6.0])
    y = np.array([1.0, 3.0, 5.0])
    # pooled sd = 2, mean difference = 1
    assert cohen_d(x, y) == pytest.approx(0.5)
    assert cohen_d(y, x) == pytest.approx(-0.5)


def test_cohen_d_insufficient_data():
    assert np.isnan(cohen_d(np.array([1.0]), np.array([1.0, 2.0])))
    assert np.isnan(cohen_d(np.array([3.0, 3.0]), np.array([3.0, 3.0])))


def test_cramers_v_bounds():
    # perfect association in a 2 x 2 table
    counts = np.array([[10, 0], [0, 10]])
    assert cramers_v(counts, chi2=20.0) == pytest.approx(1.0)
    assert cramers_v(counts, chi2=0.0) == 0.0


def test_cramers_v_degenerate():
    assert np.isnan(cramers_v(np.array([[3, 4]]), chi2=1.0))
    assert np.isnan(cramers_v(np.zeros((2, 2)), chi2=0.0))


def test_eta_squared():
    groups = [np.array([1.0, 1.0]), np.array([3.0, 3.0])]
    # all variance is between groups
    assert eta_squared(groups) == pytest.approx(1.0)

    groups = [np.array([1.0, 3.0]), np.array([1.0, 3.0])]
    assert eta_squared(groups) == pytest.approx(0.0)


def test_eta_squared_zero_variance():
    assert np.isnan(eta_squared([np.array([2.0, 2.0]), np.array([2.0])]))
