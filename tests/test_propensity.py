from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from mindset import Dataset, PropensityModel, simulate_mindset
from mindset._exceptions import ConvergenceError
from mindset.estimators import propensity as propensity_module
from mindset.estimators import propensity_scores


N = 3_000


def make_dataset(n=N, confounding=1.0, seed=3):
    return Dataset.from_frame(simulate_mindset(n=n, confounding=confounding, seed=seed))


class TestPropensityModelFit:
    """Fit once per class; tests inspect the fitted value object."""

    @classmethod
    def setup_class(cls):
        cls.ds = make_dataset()
        cls.model = PropensityModel.fit(cls.ds)

    def test_params_cover_intercept_and_design(self):
        assert self.model.params.index[0] == "const"
        assert self.model.columns == self.ds.design_columns
        assert self.model.n_obs == N

    def test_recovers_coefficient_signs(self):
        # Simulated treatment model: -0.4 on school_mindset, +0.25 on success_expect.
        assert self.model.params["school_mindset"] < 0
        assert self.model.params["success_expect"] > 0

    def test_scores_strictly_inside_unit_interval(self):
        ps = self.model.predict(self.ds)
        assert ps.shape == (N,)
        assert np.all(ps > 0.0)
        assert np.all(ps < 1.0)

    def test_scores_inside_unit_interval_for_extreme_inputs(self):
        df = simulate_mindset(n=N, seed=3)
        df["school_mindset"] = np.where(np.arange(N) % 2 == 0, 1e8, -1e8)
        extreme = Dataset.from_frame(df)
        ps = self.model.predict(extreme)
        assert np.all(np.isfinite(ps))
        assert np.all(ps > 0.0)
        assert np.all(ps < 1.0)

    def test_mean_score_tracks_treatment_rate(self):
        ps = self.model.predict(self.ds)
        # Logistic MLE with an intercept reproduces the base rate exactly.
        assert ps.mean() == pytest.approx(self.ds.treatment.mean(), abs=1e-6)

    def test_predict_rejects_mismatched_design(self):
        extra = self.ds.with_design_column("noise", np.zeros(N))
        with pytest.raises(ValueError, match="design columns"):
            self.model.predict(extra)

    def test_fit_does_not_mutate_dataset(self):
        before = self.ds.design
        PropensityModel.fit(self.ds)
        pd.testing.assert_frame_equal(before, self.ds.design)

    def test_propensity_scores_helper(self):
        np.testing.assert_allclose(propensity_scores(self.ds), self.model.predict(self.ds))


class TestPropensityModelFailures:
    def test_perfect_separation_raises(self):
        df = simulate_mindset(n=400, seed=5)
        df["intervention"] = (df["school_mindset"] > 0).astype(int)
        ds = Dataset.from_frame(df)
        with pytest.raises(ConvergenceError):
            PropensityModel.fit(ds)

    def test_single_group_raises(self):
        ds = make_dataset(n=400)
        treated = np.where(ds.treatment == 1)[0]
        with pytest.raises(ConvergenceError, match="both"):
            PropensityModel.fit(ds.take(treated))

    def test_non_converged_fit_raises(self, monkeypatch):
        class StalledLogit:
            def __init__(self, endog, exog):
                self.exog = exog

            def fit(self, disp=0):
                return SimpleNamespace(
                    params=np.zeros(self.exog.shape[1]),
                    mle_retvals={"converged": False, "iterations": 35},
                )

        monkeypatch.setattr(propensity_module.sm, "Logit", StalledLogit)
        with pytest.raises(ConvergenceError, match="did not converge after 35"):
            PropensityModel.fit(make_dataset(n=400))
