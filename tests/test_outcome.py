import numpy as np
import pytest

from mindset import Dataset, OutcomeModel, simulate_mindset
from mindset._exceptions import EstimationError
from mindset.estimators.outcome import (
    difference_in_means,
    difference_in_means_statistic,
    regression_adjustment,
    regression_statistic,
)


N = 1_000


def make_dataset(n=N, effect=5.0, confounding=1.0, seed=0):
    return Dataset.from_frame(
        simulate_mindset(n=n, effect=effect, confounding=confounding, seed=seed)
    )


class TestOutcomeModel:
    @classmethod
    def setup_class(cls):
        cls.ds = make_dataset(n=2_000, seed=1)
        cls.model = OutcomeModel.fit(cls.ds)

    def test_params_per_arm(self):
        assert list(self.model.control_params.index) == ["const"] + self.ds.design_columns
        assert list(self.model.treated_params.index) == ["const"] + self.ds.design_columns

    def test_predicted_contrast_recovers_effect(self):
        mu0, mu1 = self.model.predict(self.ds)
        assert abs(np.mean(mu1 - mu0) - 5.0) < 0.3

    def test_predicts_on_disjoint_dataset(self):
        other = make_dataset(n=300, seed=99)
        mu0, mu1 = self.model.predict(other)
        assert mu0.shape == mu1.shape == (300,)

    def test_rejects_mismatched_design(self):
        extra = self.ds.with_design_column("noise", np.zeros(self.ds.n))
        with pytest.raises(ValueError, match="design"):
            self.model.predict(extra)

    def test_empty_arm_raises(self):
        control = np.where(self.ds.treatment == 0)[0]
        with pytest.raises(EstimationError, match="treated"):
            OutcomeModel.fit(self.ds.take(control))


class TestRegressionEstimators:
    @classmethod
    def setup_class(cls):
        cls.ds = make_dataset()
        cls.naive = difference_in_means(cls.ds)
        cls.adjusted = regression_adjustment(cls.ds)

    def test_difference_in_means_equals_group_gap(self):
        y, w = self.ds.outcome, self.ds.treatment
        gap = y[w == 1].mean() - y[w == 0].mean()
        assert self.naive.params["treatment"] == pytest.approx(gap)
        assert difference_in_means_statistic(self.ds) == pytest.approx(gap)

    def test_regression_close_to_effect_and_inside_ci(self):
        effect = self.adjusted.params["treatment"]
        lo, hi = self.adjusted.conf_int().loc["treatment"]
        assert abs(effect - 5.0) < 1.0
        assert lo <= effect <= hi

    def test_regression_removes_confounding_bias(self):
        naive_bias = abs(self.naive.params["treatment"] - 5.0)
        adjusted_bias = abs(self.adjusted.params["treatment"] - 5.0)
        assert adjusted_bias < naive_bias

    def test_regression_statistic_matches(self):
        assert regression_statistic(self.ds) == pytest.approx(self.adjusted.params["treatment"])

    def test_regression_within_one_of_effect_across_draws(self):
        for seed in range(10):
            ds = make_dataset(seed=100 + seed)
            assert abs(regression_statistic(ds) - 5.0) < 1.0

    def test_single_group_statistic_raises(self):
        treated = np.where(self.ds.treatment == 1)[0]
        with pytest.raises(EstimationError):
            regression_statistic(self.ds.take(treated))
        with pytest.raises(EstimationError):
            difference_in_means_statistic(self.ds.take(treated))

    def test_covariate_named_like_treatment_term_rejected(self):
        clash = self.ds.with_design_column("treatment", np.zeros(self.ds.n))
        with pytest.raises(ValueError, match="clashes"):
            regression_adjustment(clash)
