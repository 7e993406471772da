import numpy as np
import pytest

from mindset import Dataset, MindsetAnalysis, StudyConfig, simulate_mindset
from mindset.refutations import RefutationCheck, RefutationReport
from mindset.refutations.aipw import _check_overlap, _check_placebo_treatment


N = 1_000


def make_dataset():
    return Dataset.from_frame(simulate_mindset(n=N, effect=5.0, seed=42))


class TestRefutationReport:
    """Fit and refute once per class; tests inspect the pre-computed report."""

    @classmethod
    def setup_class(cls):
        cls.ds     = make_dataset()
        cls.result = MindsetAnalysis(StudyConfig(n_boot=50)).fit(cls.ds)
        cls.report = cls.result.refute(cls.ds)

    def test_refute_returns_report(self):
        assert isinstance(self.report, RefutationReport)

    def test_report_has_three_checks(self):
        assert [c.name for c in self.report.checks] == [
            "Placebo treatment", "Random common cause", "Overlap",
        ]

    def test_placebo_removes_effect(self):
        placebo = self.report["Placebo treatment"]
        assert abs(self.result["aipw"].effect) > 1.0
        assert placebo.passed, placebo.detail
        assert placebo.statistic <= placebo.threshold
        assert "placebo ATE" in placebo.detail

    def test_random_common_cause_keeps_estimate(self):
        rcc = self.report["Random common cause"]
        assert rcc.passed, rcc.detail
        assert rcc.threshold == self.result["aipw"].std_err
        assert "estimate shifted by" in rcc.detail

    def test_well_specified_study_passes_every_check(self):
        assert self.report.passed, self.report.summary()

    def test_report_keeps_original_estimate(self):
        assert self.report.effect == self.result["aipw"].effect
        assert self.report.std_err == self.result["aipw"].std_err
        assert "bootstrap SE" in self.report.summary()

    def test_unknown_check_name_raises(self):
        with pytest.raises(KeyError):
            self.report["Bogus"]

    def test_overlap_passes(self):
        overlap = self.report["Overlap"]
        assert overlap.passed
        assert "100.0%" in overlap.detail

    def test_passed_consistent_with_failed_checks(self):
        assert self.report.passed == (len(self.report.failed_checks) == 0)

    def test_checks_returns_copy(self):
        copy = self.report.checks
        copy.clear()
        assert len(self.report.checks) == 3

    def test_checks_are_refutation_check_instances(self):
        for check in self.report.checks:
            assert isinstance(check, RefutationCheck)
            assert isinstance(check.name, str)
            assert isinstance(check.passed, bool)
            assert isinstance(check.detail, str)

    def test_summary_contains_treatment_and_outcome(self):
        summary = self.report.summary()
        assert "intervention" in summary
        assert "achievement_score" in summary


class TestOverlapCheck:
    def test_fails_with_poor_overlap(self):
        ps = np.concatenate([np.full(10, 0.005), np.full(90, 0.5)])
        check = _check_overlap(ps, (0.01, 0.99))
        assert not check.passed
        assert "90.0%" in check.detail

    def test_summary_reports_failures(self):
        checks = [
            RefutationCheck("Overlap", False, "poor"),
            RefutationCheck("Placebo treatment", True, "fine"),
        ]
        report = RefutationReport(
            checks, treatment="intervention", outcome="achievement_score", effect=5.0, std_err=0.1,
        )
        assert not report.passed
        assert "[FAIL]" in report.summary()
        assert "1 check(s) failed" in report.summary()


class TestPlaceboCheck:
    def test_placebo_bound_uses_own_standard_error(self):
        ds = make_dataset()
        check = _check_placebo_treatment(ds, StudyConfig())
        assert np.isfinite(check.threshold)
        assert check.threshold > 0.1
        assert "1.96 SE" in check.detail

    def test_failed_fit_fails_check(self):
        ds = make_dataset()
        treated_only = ds.take(np.where(ds.treatment == 1)[0])
        check = _check_placebo_treatment(treated_only, StudyConfig())
        assert not check.passed
        assert np.isnan(check.statistic)
