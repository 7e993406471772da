import numpy as np
import pandas as pd
import pytest

from mindset import (
    AnalysisResult,
    BalanceReport,
    Dataset,
    EstimateResult,
    MindsetAnalysis,
    StudyConfig,
    simulate_mindset,
)
from mindset._exceptions import BootstrapError, SchemaError
from mindset.estimators.aipw import aipw_point_estimate
from mindset.estimators.outcome import difference_in_means_statistic, regression_statistic
from mindset.estimators.propensity import propensity_scores
from mindset.estimators.weighting import ipw_point_estimate


N = 1_000
METHODS = ["naive", "regression", "ipw", "aipw"]


def make_data(n=N, effect=5.0, confounding=1.0, seed=42):
    return simulate_mindset(n=n, effect=effect, confounding=confounding, seed=seed)


class TestAnalysisValidation:
    def test_missing_column_raises(self):
        df = make_data().drop(columns=["school_size"])
        with pytest.raises(SchemaError, match="school_size"):
            MindsetAnalysis().fit(df)

    def test_zero_bootstrap_replicates_raises(self):
        with pytest.raises(BootstrapError):
            MindsetAnalysis(StudyConfig(n_boot=0)).fit(make_data(n=300))

    def test_dataset_with_other_columns_raises(self):
        df = make_data(n=300).rename(columns={"achievement_score": "y"})
        ds = Dataset.from_frame(df, StudyConfig(outcome="y"))
        with pytest.raises(ValueError, match="different columns"):
            MindsetAnalysis().fit(ds)


class TestMindsetAnalysis:
    """Fit once per class so the bootstraps run only once."""

    @classmethod
    def setup_class(cls):
        cls.df = make_data()
        cls.result = MindsetAnalysis().fit(cls.df)

    def test_returns_analysis_result(self):
        assert isinstance(self.result, AnalysisResult)
        assert list(self.result.estimates) == METHODS
        for key in METHODS:
            assert isinstance(self.result[key], EstimateResult)

    def test_adjusted_estimates_close_to_injected_effect(self):
        for key in ["regression", "ipw", "aipw"]:
            assert abs(self.result[key].effect - 5.0) < 1.0, key

    def test_regression_estimate_inside_its_ci(self):
        reg = self.result["regression"]
        lo, hi = reg.conf_int
        assert lo <= reg.effect <= hi
        assert abs(reg.effect - 5.0) < 1.0

    def test_bootstrap_cis_bracket_point_estimates(self):
        for key in ["ipw", "aipw"]:
            est = self.result[key]
            lo, hi = est.conf_int
            assert lo <= est.effect <= hi, key

    def test_interval_kinds(self):
        assert self.result["naive"].ci_kind == "analytic"
        assert self.result["regression"].ci_kind == "analytic"
        assert self.result["ipw"].ci_kind == "bootstrap"
        assert self.result["aipw"].ci_kind == "bootstrap"
        assert self.result["naive"].bootstrap_estimates is None

    def test_bootstrap_distribution_exposed(self):
        boot = self.result["aipw"].bootstrap_estimates
        assert boot.ndim == 1
        assert 0 < len(boot) <= 100
        assert np.all(np.isfinite(boot))

    def test_bootstrap_estimates_returns_copy(self):
        boot = self.result["ipw"].bootstrap_estimates
        first = boot[0]
        boot[:] = 0
        assert self.result["ipw"].bootstrap_estimates[0] == first

    def test_std_errs_positive_and_significant(self):
        for key in METHODS:
            assert self.result[key].std_err > 0
            assert self.result[key].pvalue < 0.05

    def test_to_frame(self):
        table = self.result.to_frame()
        assert isinstance(table, pd.DataFrame)
        assert len(table) == 4
        assert {"estimate", "ci_lower", "ci_upper", "ci_kind"} <= set(table.columns)
        assert (table["ci_lower"] <= table["ci_upper"]).all()

    def test_weights_and_scores_per_record(self):
        ps = self.result.propensity_scores
        w = self.result.weights
        assert len(ps) == len(w) == N
        assert ((ps > 0) & (ps < 1)).all()
        assert (w >= 1.0).all()

    def test_balance_report(self):
        assert isinstance(self.result.balance, BalanceReport)
        assert "school_mindset" in self.result.balance.imbalanced(weighted=False)

    def test_assumptions(self):
        assert len(self.result.assumptions) == 4
        assert any(a.testable for a in self.result.assumptions)

    def test_summary_contents(self):
        summary = self.result.summary()
        assert "intervention" in summary
        assert "achievement_score" in summary
        assert "AIPW" in summary
        assert "bootstrap" in summary

    def test_repr_is_summary(self):
        assert repr(self.result) == self.result.summary()

    def test_refit_is_reproducible(self):
        again = MindsetAnalysis().fit(self.df)
        for key in METHODS:
            assert again[key].effect == self.result[key].effect
            assert again[key].conf_int == self.result[key].conf_int


class TestBootstrapAll:
    def test_every_method_bootstrapped(self):
        cfg = StudyConfig(n_boot=30, bootstrap_all=True, min_replicates=10)
        result = MindsetAnalysis(cfg).fit(make_data(n=500))
        for key in METHODS:
            assert result[key].ci_kind == "bootstrap"
            lo, hi = result[key].conf_int
            assert lo < hi


class TestZeroEffect:
    """With no injected effect, every estimator should sit near zero."""

    def test_all_estimators_near_zero_randomised(self):
        ds = Dataset.from_frame(make_data(n=20_000, effect=0.0, confounding=0.0, seed=5))
        ps = propensity_scores(ds)
        estimates = [
            difference_in_means_statistic(ds),
            regression_statistic(ds),
            ipw_point_estimate(ds, ps),
            aipw_point_estimate(ds, np.random.default_rng(0)),
        ]
        for est in estimates:
            assert abs(est) < 0.1

    def test_adjusted_estimators_near_zero_confounded(self):
        ds = Dataset.from_frame(make_data(n=20_000, effect=0.0, confounding=1.0, seed=6))
        ps = propensity_scores(ds)
        assert abs(regression_statistic(ds)) < 0.1
        assert abs(ipw_point_estimate(ds, ps)) < 0.15
        assert abs(aipw_point_estimate(ds, np.random.default_rng(0))) < 0.1
