from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial

import numpy as np
import pandas as pd

from .balance import BalanceReport, balance
from .bootstrap import bootstrap
from .config import StudyConfig
from .data import Dataset
from .estimators.aipw import aipw_point_estimate, aipw_statistic
from .estimators.outcome import (
    difference_in_means,
    difference_in_means_statistic,
    regression_adjustment,
    regression_statistic,
)
from .estimators.propensity import PropensityModel
from .estimators.weighting import ipw_point_estimate, ipw_statistic, ipw_weights, overlap_mask
from .refutations.aipw import RefutationReport, refute_aipw
from .results import EstimateResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assumption:
    """
    An identifying assumption behind the ATE estimates.

    ``check`` names the refutation check in ``AnalysisResult.refute()`` that
    probes it, or is ``None`` when the data cannot speak to it.
    """

    name: str
    check: str | None = None

    @property
    def testable(self) -> bool:
        return self.check is not None

    def fmt_tag(self) -> str:
        return f"[{self.check or 'untestable':^21}]"


ATE_ASSUMPTIONS: list[Assumption] = [
    Assumption("Conditional ignorability: no unobserved confounders given the covariates"),
    Assumption("Positivity: every student had a chance of receiving the intervention", check="Overlap"),
    Assumption("Correct specification of the propensity or the outcome model", check="Placebo treatment"),
    Assumption("Stable Unit Treatment Value Assumption (SUTVA)"),
]

_METHODS = {
    "naive":      "Difference in means",
    "regression": "Regression adjustment",
    "ipw":        "IPW",
    "aipw":       "AIPW (doubly robust)",
}


# ── Result ─────────────────────────────────────────────────────────────────────

class AnalysisResult:
    """
    All four ATE estimates of one analysis run, with the propensity model,
    per-record weights and the covariate balance report.

    ``estimates`` is keyed ``"naive"``, ``"regression"``, ``"ipw"`` and
    ``"aipw"``. ``to_frame()`` gives the results table; ``summary()`` renders
    it as text.
    """

    def __init__(
        self,
        estimates: dict[str, EstimateResult],
        propensity: PropensityModel,
        propensity_scores: pd.Series,
        weights: pd.Series,
        balance_report: BalanceReport,
        config: StudyConfig,
    ) -> None:
        self._estimates = estimates
        self._propensity = propensity
        self._ps = propensity_scores
        self._weights = weights
        self._balance = balance_report
        self._config = config

    @property
    def estimates(self) -> dict[str, EstimateResult]:
        return dict(self._estimates)

    def __getitem__(self, key: str) -> EstimateResult:
        return self._estimates[key]

    @property
    def propensity_model(self) -> PropensityModel:
        """Propensity model fit on the full sample."""
        return self._propensity

    @property
    def propensity_scores(self) -> pd.Series:
        return self._ps.copy()

    @property
    def weights(self) -> pd.Series:
        """
        IPW weight of every record; zero for records excluded because their
        score is outside the trimming bounds.
        """
        return self._weights.copy()

    @property
    def balance(self) -> BalanceReport:
        return self._balance

    @property
    def assumptions(self) -> list[Assumption]:
        """Modelling assumptions required for a causal interpretation."""
        return list(ATE_ASSUMPTIONS)

    def to_frame(self) -> pd.DataFrame:
        """Results table: one row per method."""
        return pd.DataFrame([e.as_row() for e in self._estimates.values()]).set_index("method")

    def summary(self) -> str:
        cfg = self._config
        level = int(round(100 * (1 - cfg.alpha)))
        n_out = int((~overlap_mask(self._ps.values, cfg.trim)).sum())

        lines = [
            "",
            f"Causal Effect: {cfg.treatment} → {cfg.outcome}",
            "  Estimand: ATE (average treatment effect)",
            "─" * 72,
            f"  {'method':<24}{'estimate':>10}  {f'{level}% CI':<22}{'std. err':>9}  interval",
        ]
        for est in self._estimates.values():
            lo, hi = est.conf_int
            ci = f"[{lo:.4f}, {hi:.4f}]"
            kind = est.ci_kind
            if est.bootstrap is not None:
                kind += f" ({est.bootstrap.n_retained}/{est.bootstrap.n_requested})"
            lines.append(
                f"  {est.method:<24}{est.effect:>10.4f}  {ci:<22}{est.std_err:>9.4f}  {kind}"
            )
        lines += [
            "",
            f"  Records              : {len(self._ps)}",
            f"  Outside overlap      : {n_out}  (propensity score outside {cfg.trim})",
            "",
            "  Assumptions",
            "  " + "┄" * 48,
        ]
        for a in ATE_ASSUMPTIONS:
            lines.append(f"  {a.fmt_tag()}  {a.name}")
        lines.append("")
        return "\n".join(lines)

    def refute(self, data: Dataset | pd.DataFrame) -> RefutationReport:
        """
        Run refutation checks against the AIPW estimate.

        - **Placebo treatment**: permutes treatment labels; the placebo ATE
          should be within 1.96 of its own standard errors from zero.
        - **Random common cause**: adds a noise covariate; the ATE should
          move by less than one SE.
        - **Overlap**: at least 95% of scores inside the trimming bounds.

        Parameters
        ----------
        data : Dataset or pd.DataFrame
            The same data passed to ``fit()``.
        """
        if isinstance(data, pd.DataFrame):
            data = Dataset.from_frame(data, self._config)
        aipw = self._estimates["aipw"]
        return refute_aipw(data, self._config, aipw.effect, aipw.std_err, self._ps.values)

    def __repr__(self) -> str:
        return self.summary()


# ── Analysis ───────────────────────────────────────────────────────────────────

class MindsetAnalysis:
    """
    Estimates the ATE of the intervention four ways on one dataset:

    1. Difference in means (analytic CI).
    2. Regression adjustment on the covariates (analytic CI).
    3. Inverse probability weighting (bootstrap CI).
    4. Augmented IPW, doubly robust (bootstrap CI).

    With ``config.bootstrap_all`` every method gets a bootstrap interval from
    the same engine. Also computes covariate balance before and after
    weighting.

    Example::

        data = load_dataset("learning_mindset.csv")
        result = MindsetAnalysis().fit(data)
        print(result.summary())
        print(result.balance.summary())
    """

    def __init__(self, config: StudyConfig | None = None) -> None:
        self._config = config or StudyConfig()

    @property
    def config(self) -> StudyConfig:
        return self._config

    def _bootstrap(self, data: Dataset, statistic, label: str):
        cfg = self._config
        return bootstrap(
            data,
            statistic,
            n_boot=cfg.n_boot,
            seed=cfg.seed,
            n_jobs=cfg.n_jobs,
            min_replicates=cfg.min_replicates,
            label=label,
        )

    def fit(self, data: Dataset | pd.DataFrame) -> AnalysisResult:
        """
        Run every estimator and the balance diagnostic on ``data``.

        Parameters
        ----------
        data : Dataset or pd.DataFrame
            A frame is validated with ``Dataset.from_frame(data, config)``.

        Raises
        ------
        ``SchemaError``
            If required columns are missing or treatment is not binary.
        ``ConvergenceError``
            If the propensity model cannot be fit on the full sample.
        ``BootstrapError``
            If ``n_boot`` is 0 or no bootstrap replicate survives.
        """
        cfg = self._config
        if isinstance(data, pd.DataFrame):
            data = Dataset.from_frame(data, cfg)
        elif data.config.required_columns != cfg.required_columns:
            raise ValueError(
                "Dataset was built for different columns than this analysis: "
                f"{list(data.config.required_columns)} vs {list(cfg.required_columns)}"
            )

        propensity = PropensityModel.fit(data)
        ps = propensity.predict(data)
        keep = overlap_mask(ps, cfg.trim)
        weights = np.where(keep, ipw_weights(data.treatment, ps), 0.0)

        estimates: dict[str, EstimateResult] = {}

        naive = difference_in_means(data)
        regression = regression_adjustment(data)
        if cfg.bootstrap_all:
            for key, res, stat in [
                ("naive", naive, difference_in_means_statistic),
                ("regression", regression, regression_statistic),
            ]:
                dist = self._bootstrap(data, stat, _METHODS[key])
                estimates[key] = EstimateResult.from_bootstrap(
                    _METHODS[key], res.params["treatment"], dist, cfg.alpha,
                )
        else:
            estimates["naive"] = EstimateResult.from_ols(_METHODS["naive"], naive, "treatment", cfg.alpha)
            estimates["regression"] = EstimateResult.from_ols(
                _METHODS["regression"], regression, "treatment", cfg.alpha,
            )

        ipw = ipw_point_estimate(data, ps, cfg.trim)
        ipw_dist = self._bootstrap(data, partial(ipw_statistic, trim=cfg.trim), _METHODS["ipw"])
        estimates["ipw"] = EstimateResult.from_bootstrap(_METHODS["ipw"], ipw, ipw_dist, cfg.alpha)

        aipw = aipw_point_estimate(data, np.random.default_rng(cfg.seed), cfg.trim, cfg.fit_fraction)
        aipw_dist = self._bootstrap(
            data,
            partial(aipw_statistic, trim=cfg.trim, fit_fraction=cfg.fit_fraction),
            _METHODS["aipw"],
        )
        estimates["aipw"] = EstimateResult.from_bootstrap(_METHODS["aipw"], aipw, aipw_dist, cfg.alpha)

        for est in estimates.values():
            logger.info("%s: ATE = %.4f, CI = [%.4f, %.4f]", est.method, est.effect, *est.conf_int)

        return AnalysisResult(
            estimates=estimates,
            propensity=propensity,
            propensity_scores=pd.Series(ps, name="propensity_score"),
            weights=pd.Series(weights, name="weight"),
            balance_report=balance(data, weights),
            config=cfg,
        )
