from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..config import StudyConfig
from ..data import Dataset
from ..estimators.aipw import aipw_estimate_with_se, aipw_point_estimate
from ..estimators.weighting import overlap_mask

_RCC_SEED      = 54321
_PLACEBO_SEED  = 99999
_RCC_COL       = "_rcc"
_MIN_OVERLAP   = 0.95
# |z| of the placebo estimate allowed under the null; two-sided 5% level.
_PLACEBO_Z     = 1.96


@dataclass(frozen=True)
class RefutationCheck:
    """
    Outcome of one check against the AIPW estimate.

    ``statistic`` is the quantity the check measured and ``threshold`` the
    bound it was held to; both are NaN when the check could not be run.
    """

    name: str
    passed: bool
    detail: str
    statistic: float = float("nan")
    threshold: float = float("nan")

    def __repr__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return f"RefutationCheck({status!r}, {self.name!r})"


class RefutationReport:
    """
    Refutation checks run against one fitted AIPW estimate.

    Obtain via ``AnalysisResult.refute(data)``. The report keeps the AIPW
    effect and bootstrap SE the checks were judged against; ``passed`` is the
    overall verdict.
    """

    def __init__(
        self,
        checks: list[RefutationCheck],
        treatment: str,
        outcome: str,
        effect: float,
        std_err: float,
    ) -> None:
        self._checks = checks
        self._treatment = treatment
        self._outcome = outcome
        self._effect = effect
        self._std_err = std_err

    @property
    def checks(self) -> list[RefutationCheck]:
        return list(self._checks)

    def __getitem__(self, name: str) -> RefutationCheck:
        for check in self._checks:
            if check.name == name:
                return check
        raise KeyError(name)

    @property
    def effect(self) -> float:
        """AIPW ATE the checks refer to."""
        return self._effect

    @property
    def std_err(self) -> float:
        return self._std_err

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self._checks)

    @property
    def failed_checks(self) -> list[RefutationCheck]:
        return [c for c in self._checks if not c.passed]

    def summary(self) -> str:
        lines = [
            "",
            f"AIPW Refutation Report: {self._treatment} → {self._outcome}",
            f"  ATE = {self._effect:.4f}  (bootstrap SE = {self._std_err:.4f})",
            "─" * 50,
        ]
        for check in self._checks:
            status = "PASS" if check.passed else "FAIL"
            lines.append(f"  [{status}]  {check.name}: {check.detail}")
        lines.append("")
        if self.passed:
            lines.append("  All checks passed.")
        else:
            lines.append(f"  {len(self.failed_checks)} check(s) failed, see above.")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


def _check_placebo_treatment(data: Dataset, config: StudyConfig) -> RefutationCheck:
    """
    Permute treatment labels at random and re-run AIPW.

    With the link between treatment and outcome broken, the placebo ATE
    should be indistinguishable from zero: ``|placebo ATE|`` is compared with
    1.96 times the placebo estimate's own influence-function SE. The real
    effect stays in the outcome as noise, so the original SE would be too
    tight a yardstick.
    """
    rng = np.random.default_rng(_PLACEBO_SEED)
    placebo = data.with_treatment(rng.permutation(data.treatment))

    try:
        placebo_ate, placebo_se = aipw_estimate_with_se(
            placebo, np.random.default_rng(config.seed), config.trim, config.fit_fraction,
        )
    except Exception:
        return RefutationCheck(
            name="Placebo treatment",
            passed=False,
            detail="AIPW failed on permuted treatment, check data quality.",
        )

    bound = _PLACEBO_Z * placebo_se
    passed = abs(placebo_ate) <= bound
    if passed:
        detail = (
            f"placebo ATE = {placebo_ate:.4f}  (≤ {_PLACEBO_Z} SE = {bound:.4f})  "
            f"Permuting treatment labels yields no detectable effect, as expected."
        )
    else:
        detail = (
            f"placebo ATE = {placebo_ate:.4f}  (> {_PLACEBO_Z} SE = {bound:.4f})  "
            f"A randomly permuted treatment produced an effect; the original "
            f"result may be driven by model misspecification."
        )
    return RefutationCheck(
        name="Placebo treatment", passed=passed, detail=detail,
        statistic=abs(placebo_ate), threshold=bound,
    )


def _check_random_common_cause(
    data: Dataset,
    config: StudyConfig,
    original_ate: float,
    original_se: float,
) -> RefutationCheck:
    """
    Add a pure-noise covariate to both nuisance models and re-run AIPW on the
    same split. Noise is unrelated to treatment and outcome, so the ATE should
    move by less than one bootstrap SE.
    """
    rng = np.random.default_rng(_RCC_SEED)
    augmented = data.with_design_column(_RCC_COL, rng.normal(size=data.n))

    try:
        new_ate = aipw_point_estimate(
            augmented, np.random.default_rng(config.seed), config.trim, config.fit_fraction,
        )
    except Exception:
        return RefutationCheck(
            name="Random common cause",
            passed=False,
            detail="AIPW failed after adding random covariate, check data quality.",
        )

    shift = abs(new_ate - original_ate)
    passed = shift <= original_se
    if passed:
        detail = f"estimate shifted by {shift:.4f}  (≤ 1 SE = {original_se:.4f})"
    else:
        detail = (
            f"estimate shifted by {shift:.4f}  (> 1 SE = {original_se:.4f})  "
            f"Adding a random common cause destabilised the AIPW estimate."
        )
    return RefutationCheck(
        name="Random common cause", passed=passed, detail=detail,
        statistic=shift, threshold=original_se,
    )


def _check_overlap(ps: np.ndarray, trim: tuple[float, float]) -> RefutationCheck:
    """At least 95% of records should have scores inside the trimming bounds."""
    share = float(overlap_mask(ps, trim).mean())
    passed = share >= _MIN_OVERLAP
    detail = (
        f"{share:.1%} of propensity scores inside ({trim[0]}, {trim[1]})  "
        f"(threshold {_MIN_OVERLAP:.0%})"
    )
    if not passed:
        detail += "  Limited common support; weights are driven by few records."
    return RefutationCheck(
        name="Overlap", passed=passed, detail=detail,
        statistic=share, threshold=_MIN_OVERLAP,
    )


def refute_aipw(
    data: Dataset,
    config: StudyConfig,
    effect: float,
    std_err: float,
    ps: np.ndarray,
) -> RefutationReport:
    """Run the placebo, random-common-cause and overlap checks in that order."""
    checks = [
        _check_placebo_treatment(data, config),
        _check_random_common_cause(data, config, effect, std_err),
        _check_overlap(ps, config.trim),
    ]
    return RefutationReport(
        checks=checks,
        treatment=config.treatment,
        outcome=config.outcome,
        effect=effect,
        std_err=std_err,
    )
