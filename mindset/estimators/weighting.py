from __future__ import annotations

import logging

import numpy as np

from ..config import TRIM_BOUNDS
from ..data import Dataset
from .._exceptions import OverlapError
from .propensity import PropensityModel

logger = logging.getLogger(__name__)


def overlap_mask(ps: np.ndarray, bounds: tuple[float, float] = TRIM_BOUNDS) -> np.ndarray:
    """``True`` where a score lies strictly inside ``bounds``."""
    lo, hi = bounds
    ps = np.asarray(ps, dtype=float)
    return (ps > lo) & (ps < hi)


def check_overlap(ps: np.ndarray, bounds: tuple[float, float] = TRIM_BOUNDS) -> None:
    """
    Raise ``OverlapError`` if any score falls outside ``bounds``.

    Inside the bootstrap a single extreme score discards the whole replicate
    rather than trimming the offending records.
    """
    inside = overlap_mask(ps, bounds)
    if not inside.all():
        n_bad = int((~inside).sum())
        raise OverlapError(
            f"{n_bad} propensity score(s) outside ({bounds[0]}, {bounds[1]})."
        )


def ipw_weights(treatment: np.ndarray, ps: np.ndarray) -> np.ndarray:
    """Inverse-probability weights: ``1/p`` for treated, ``1/(1-p)`` for control."""
    treatment = np.asarray(treatment, dtype=float)
    ps = np.asarray(ps, dtype=float)
    return np.where(treatment == 1, 1.0 / ps, 1.0 / (1.0 - ps))


def ipw_ate(outcome: np.ndarray, treatment: np.ndarray, ps: np.ndarray) -> float:
    """
    Horvitz-Thompson IPW estimate of the ATE::

        mean( W·Y/p − (1−W)·Y/(1−p) )

    Every score must lie strictly inside (0, 1).
    """
    y = np.asarray(outcome, dtype=float)
    w = np.asarray(treatment, dtype=float)
    p = np.asarray(ps, dtype=float)
    if not (len(y) == len(w) == len(p)):
        raise ValueError("outcome, treatment and ps must have the same length.")
    if len(y) == 0:
        raise ValueError("Cannot estimate an ATE from zero records.")
    if np.any(p <= 0.0) or np.any(p >= 1.0) or not np.all(np.isfinite(p)):
        raise ValueError("Propensity scores must lie strictly between 0 and 1.")
    return float(np.mean(w * y / p - (1.0 - w) * y / (1.0 - p)))


def ipw_statistic(
    data: Dataset,
    rng: np.random.Generator | None = None,
    trim: tuple[float, float] = TRIM_BOUNDS,
) -> float:
    """
    Bootstrap statistic: refit the propensity model and compute the IPW ATE.

    Raises ``OverlapError`` if any refitted score is extreme, which discards
    the replicate. ``rng`` is accepted for a uniform statistic signature.
    """
    ps = PropensityModel.fit(data).predict(data)
    check_overlap(ps, trim)
    return ipw_ate(data.outcome, data.treatment, ps)


def ipw_point_estimate(
    data: Dataset,
    ps: np.ndarray,
    trim: tuple[float, float] = TRIM_BOUNDS,
) -> float:
    """
    IPW ATE on the full sample, excluding records whose score is outside
    ``trim`` before averaging.
    """
    keep = overlap_mask(ps, trim)
    n_drop = int((~keep).sum())
    if n_drop:
        logger.warning(
            "Excluding %d of %d records with propensity scores outside %s from IPW.",
            n_drop, data.n, trim,
        )
    return ipw_ate(data.outcome[keep], data.treatment[keep], ps[keep])
