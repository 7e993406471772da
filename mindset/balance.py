from __future__ import annotations

import numpy as np
import pandas as pd

from .data import Dataset

_IMBALANCE_THRESHOLD = 0.1


def _weighted_moments(x: np.ndarray, w: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Column-wise weighted mean and population variance."""
    total = w.sum()
    if not (total > 0.0) or not np.isfinite(total):
        raise ValueError("invalid weights: sum(weights) must be finite and > 0")
    mean = (w[:, None] * x).sum(axis=0) / total
    var = (w[:, None] * (x - mean) ** 2).sum(axis=0) / total
    return mean, var


def standardized_mean_differences(
    covariates: pd.DataFrame,
    treatment,
    weights=None,
) -> pd.Series:
    """
    Standardized mean difference of every column of ``covariates``::

        SMD_j = (mean_treated - mean_control) / sqrt((var_treated + var_control) / 2)

    With ``weights``, means and variances are weighted within each group.
    Columns with zero pooled variance get an SMD of 0.
    """
    x = covariates.to_numpy(dtype=float)
    t = np.asarray(treatment, dtype=float)
    if len(t) != len(x):
        raise ValueError("covariates/treatment length mismatch")
    if weights is None:
        w = np.ones(len(t))
    else:
        w = np.asarray(weights, dtype=float)
        if len(w) != len(t):
            raise ValueError("weights length mismatch")
        if np.any(~np.isfinite(w)) or np.any(w < 0.0):
            raise ValueError("weights must be finite and >= 0")

    treated = t == 1
    control = t == 0
    if not treated.any() or not control.any():
        raise ValueError("both treatment groups must be non-empty")

    mt, vt = _weighted_moments(x[treated], w[treated])
    mc, vc = _weighted_moments(x[control], w[control])

    denom = np.sqrt(0.5 * (vt + vc))
    with np.errstate(divide="ignore", invalid="ignore"):
        smd = np.where(denom > 0.0, (mt - mc) / denom, 0.0)
    return pd.Series(smd, index=covariates.columns, name="smd")


class BalanceReport:
    """
    Covariate balance between treated and control, before and after
    inverse-probability weighting.

    ``table`` holds one row per design column with the unweighted and
    weighted SMDs. It is the data behind a love plot.
    """

    def __init__(self, unweighted: pd.Series, weighted: pd.Series) -> None:
        self._unweighted = unweighted
        self._weighted = weighted

    @property
    def unweighted(self) -> pd.Series:
        """SMD per covariate in the raw sample."""
        return self._unweighted.copy()

    @property
    def weighted(self) -> pd.Series:
        """SMD per covariate after IPW weighting."""
        return self._weighted.copy()

    @property
    def table(self) -> pd.DataFrame:
        return pd.DataFrame({"unweighted": self._unweighted, "weighted": self._weighted})

    @property
    def improved(self) -> pd.Series:
        """``True`` where weighting shrank the absolute SMD."""
        return self._weighted.abs() < self._unweighted.abs()

    def imbalanced(self, threshold: float = _IMBALANCE_THRESHOLD, weighted: bool = True) -> list[str]:
        """Covariates whose absolute SMD exceeds ``threshold``."""
        smd = self._weighted if weighted else self._unweighted
        return list(smd.index[smd.abs() > threshold])

    def summary(self) -> str:
        lines = [
            "",
            "Covariate Balance (standardized mean differences)",
            "─" * 58,
            f"  {'covariate':<30}{'unweighted':>12}{'weighted':>12}",
        ]
        for name in self._unweighted.index:
            u = self._unweighted[name]
            w = self._weighted[name]
            flag = "  *" if abs(w) > _IMBALANCE_THRESHOLD else ""
            lines.append(f"  {name:<30}{u:>12.4f}{w:>12.4f}{flag}")
        lines += [
            "",
            f"  * |SMD| > {_IMBALANCE_THRESHOLD} after weighting",
            "",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


def balance(data: Dataset, weights) -> BalanceReport:
    """SMD of every design column of ``data``, unweighted and with ``weights``."""
    covariates = data.design
    return BalanceReport(
        unweighted=standardized_mean_differences(covariates, data.treatment),
        weighted=standardized_mean_differences(covariates, data.treatment, weights),
    )
