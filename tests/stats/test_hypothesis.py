"""Tests for the hypothesis tests."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from statflow.data import ColumnKind, ColumnSpec, Dataset
from statflow.stats.errors import GroupCountError, NotComputableError
from statflow.stats.tests import (
    two_sample_test,
    association_test,
    variance_test,
    run_test,
    welch_df,
)


# ============================================================================
# Two-sample t-test
# ============================================================================


class TestTwoSample:
    def test_welch_matches_scipy(self, grouped_dataset):
        res = two_sample_test(grouped_dataset, "Score", "Sex")

        frame = grouped_dataset.to_dataframe()
        f = frame.loc[frame["Sex"] == "f", "Score"].to_numpy()
        m = frame.loc[frame["Sex"] == "m", "Score"].to_numpy()
        ref = stats.ttest_ind(f, m, equal_var=False)

        assert res.computed
        assert res.test == "Welch two-sample t-test"
        assert res.statistic == pytest.approx(ref.statistic)
        assert res.p_value == pytest.approx(ref.pvalue)
        assert res.df == pytest.approx(welch_df(f, m))
        assert res.group_sizes == {"f": 15, "m": 15}
        assert res.n == 30
        assert res.effect_size_name == "Cohen's d"

    def test_welch_df_equal_samples(self):
        x = np.array([1.0, 2.0, 3.0, 4.0])
        y = np.array([2.0, 3.0, 4.0, 5.0])
        # equal variances and sizes -> 2 * (n - 1)
        assert welch_df(x, y) == pytest.approx(6.0)

    def test_three_groups_rejected(self, grouped_dataset):
        with pytest.raises(GroupCountError) as exc:
            two_sample_test(grouped_dataset, "Score", "Group")

        assert exc.value.found == ["A", "B", "C"]
        assert "exactly 2" in str(exc.value)

    def test_single_group_rejected(self):
        ds = Dataset.from_frame(pd.DataFrame({"x": [1.0, 2.0, 3.0], "g": ["a", "a", None]}))
        with pytest.raises(GroupCountError):
            two_sample_test(ds, "x", "g")

    def test_small_group(self):
        ds = Dataset.from_frame(pd.DataFrame({"x": [1.0, 2.0, 3.0], "g": ["a", "a", "b"]}))
        with pytest.raises(NotComputableError, match="at least 2 values"):
            two_sample_test(ds, "x", "g")

    def test_constant_groups(self):
        ds = Dataset.from_frame(pd.DataFrame({"x": [1.0, 1.0, 2.0, 2.0], "g": ["a", "a", "b", "b"]}))
        with pytest.raises(NotComputableError, match="constant"):
            two_sample_test(ds, "x", "g")


# ============================================================================
# Chi-square test of independence
# ============================================================================


class TestAssociation:
    def test_matches_scipy_with_yates(self):
        a = ["x"] * 12 + ["y"] * 12
        b = ["u"] * 9 + ["v"] * 3 + ["u"] * 4 + ["v"] * 8
        ds = Dataset.from_frame(pd.DataFrame({"A": a, "B": b}))
        res = association_test(ds, "A", "B")

        chi2, p, dof, _ = stats.chi2_contingency(np.array([[9, 3], [4, 8]]), correction=True)
        assert res.statistic == pytest.approx(chi2)
        assert res.p_value == pytest.approx(p)
        assert res.df == 1
        assert res.n == 24
        assert 0 <= res.effect_size <= 1

    def test_small_expected_counts_noted(self):
        ds = Dataset.from_frame(pd.DataFrame({"A": ["x", "x", "y", "y"], "B": ["u", "v", "u", "v"]}))
        res = association_test(ds, "A", "B")

        assert res.computed
        assert "below 5" in res.note

    def test_zero_margin(self):
        ds = Dataset.from_frame(
            pd.DataFrame({"A": ["x", "y", "x", "y"], "B": ["u", "u", "u", "u"]}),
            columns=[ColumnSpec("B", ColumnKind.CATEGORICAL, allowed=("u", "v"))],
        )
        with pytest.raises(NotComputableError, match="Zero margin"):
            association_test(ds, "A", "B")

    def test_single_level(self):
        ds = Dataset.from_frame(pd.DataFrame({"A": ["x", "y"], "B": ["u", "u"]}))
        with pytest.raises(NotComputableError, match="at least 2 levels"):
            association_test(ds, "A", "B")


# ============================================================================
# One-way ANOVA
# ============================================================================


class TestVariance:
    def test_separated_groups(self, grouped_dataset):
        res = variance_test(grouped_dataset, "Score", "Group")

        assert res.computed
        assert res.df == 2
        assert res.df2 == 27
        assert res.significant()
        assert res.effect_size > 0.8
        assert len(res.posthoc) == 3
        assert all(c.reject for c in res.posthoc)
        assert {(c.group1, c.group2) for c in res.posthoc} == {("A", "B"), ("A", "C"), ("B", "C")}

    def test_no_posthoc_when_not_significant(self):
        ds = Dataset.from_frame(
            pd.DataFrame({"x": [1.0, 2.0, 3.0, 1.0, 2.0, 3.0], "g": ["a", "a", "a", "b", "b", "b"]})
        )
        res = variance_test(ds, "x", "g")

        assert res.p_value == pytest.approx(1.0)
        assert res.posthoc == ()

    def test_one_group(self):
        ds = Dataset.from_frame(pd.DataFrame({"x": [1.0, 2.0], "g": ["a", "a"]}))
        with pytest.raises(GroupCountError):
            variance_test(ds, "x", "g")

    def test_no_within_group_df(self):
        ds = Dataset.from_frame(pd.DataFrame({"x": [1.0, 2.0], "g": ["a", "b"]}))
        with pytest.raises(NotComputableError, match="degrees of freedom"):
            variance_test(ds, "x", "g")

    def test_invalid_alpha(self, grouped_dataset):
        with pytest.raises(ValueError, match="Alpha"):
            variance_test(grouped_dataset, "Score", "Group", alpha=1.5)


# ============================================================================
# run_test
# ============================================================================


class TestRunTest:
    def test_failure_becomes_not_computable(self, grouped_dataset):
        res = run_test("two_sample", grouped_dataset, "Score", "Group")

        assert not res.computed
        assert res.variables == ("Score", "Group")
        assert "exactly 2" in res.reason
        assert np.isnan(res.p_value)
        assert not res.significant()

    def test_success(self, grouped_dataset):
        res = run_test("variance", grouped_dataset, "Score", "Group", alpha=0.01)
        assert res.computed
        assert res.test == "One-way ANOVA"

    def test_unknown_kind(self, grouped_dataset):
        with pytest.raises(ValueError, match="Unknown test kind"):
            run_test("kruskal", grouped_dataset, "Score", "Group")

    def test_wrong_column_kind_propagates(self, grouped_dataset):
        with pytest.raises(ValueError, match="numeric or ordinal"):
            run_test("two_sample", grouped_dataset, "Group", "Sex")
