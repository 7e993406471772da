from __future__ import annotations

import numpy as np
import scipy.stats as st

from .bootstrap import BootstrapDistribution


class EstimateResult:
    """
    One ATE estimate: point estimate, confidence interval and how the
    interval was obtained.

    ``ci_kind`` is ``"analytic"`` for OLS-based intervals and
    ``"bootstrap"`` for percentile intervals. Bootstrap results also keep the
    retained replicate estimates, for histograms and diagnostics.
    """

    def __init__(
        self,
        method: str,
        effect: float,
        conf_int: tuple[float, float],
        std_err: float,
        ci_kind: str,
        bootstrap: BootstrapDistribution | None = None,
    ) -> None:
        self._method = method
        self._effect = float(effect)
        self._conf_int = (float(conf_int[0]), float(conf_int[1]))
        self._std_err = float(std_err)
        self._ci_kind = ci_kind
        self._bootstrap = bootstrap

    @classmethod
    def from_ols(cls, method: str, res, term: str, alpha: float) -> EstimateResult:
        """Build from a statsmodels OLS result, reading the ``term`` coefficient."""
        ci = res.conf_int(alpha=alpha)
        return cls(
            method=method,
            effect=res.params[term],
            conf_int=(ci.loc[term, 0], ci.loc[term, 1]),
            std_err=res.bse[term],
            ci_kind="analytic",
        )

    @classmethod
    def from_bootstrap(
        cls,
        method: str,
        effect: float,
        dist: BootstrapDistribution,
        alpha: float,
    ) -> EstimateResult:
        return cls(
            method=method,
            effect=effect,
            conf_int=dist.conf_int(alpha),
            std_err=dist.std_err,
            ci_kind="bootstrap",
            bootstrap=dist,
        )

    @property
    def method(self) -> str:
        """Human-readable estimator name."""
        return self._method

    @property
    def effect(self) -> float:
        """ATE point estimate on the full sample."""
        return self._effect

    @property
    def conf_int(self) -> tuple[float, float]:
        return self._conf_int

    @property
    def std_err(self) -> float:
        return self._std_err

    @property
    def ci_kind(self) -> str:
        return self._ci_kind

    @property
    def pvalue(self) -> float:
        """Two-sided p-value for ``H0: ATE = 0``, via z-test on ``std_err``."""
        if not self._std_err > 0:
            return float("nan")
        z = abs(self._effect) / self._std_err
        return float(2.0 * st.norm.sf(z))

    @property
    def bootstrap(self) -> BootstrapDistribution | None:
        return self._bootstrap

    @property
    def bootstrap_estimates(self) -> np.ndarray | None:
        """Retained per-replicate estimates, or ``None`` for analytic intervals."""
        if self._bootstrap is None:
            return None
        return self._bootstrap.estimates.copy()

    def as_row(self) -> dict:
        lo, hi = self._conf_int
        row = {
            "method": self._method,
            "estimate": self._effect,
            "ci_lower": lo,
            "ci_upper": hi,
            "std_err": self._std_err,
            "ci_kind": self._ci_kind,
            "n_replicates": self._bootstrap.n_retained if self._bootstrap is not None else np.nan,
        }
        return row

    def __repr__(self) -> str:
        lo, hi = self._conf_int
        return (
            f"EstimateResult({self._method!r}, effect={self._effect:.4f}, "
            f"ci=[{lo:.4f}, {hi:.4f}], {self._ci_kind})"
        )
