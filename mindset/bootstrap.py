from __future__ import annotations

import logging
import warnings
from collections import Counter
from dataclasses import dataclass
from typing import Callable

import numpy as np
from joblib import Parallel, delayed

from .config import ALPHA, BOOTSTRAP_N, BOOTSTRAP_SEED, MIN_REPLICATES
from .data import Dataset
from ._exceptions import BootstrapError, SparseBootstrapWarning

logger = logging.getLogger(__name__)

Statistic = Callable[[Dataset, np.random.Generator], float]
"""An estimator evaluated on one (resampled) dataset, given that replicate's RNG."""


@dataclass(frozen=True, eq=False)
class BootstrapDistribution:
    """
    The retained bootstrap replicates of one estimator.

    Failed replicates (any exception from the statistic) and non-finite
    values are counted but never enter ``estimates``.
    """

    estimates: np.ndarray
    n_requested: int
    n_failed: int
    n_nonfinite: int

    @property
    def n_retained(self) -> int:
        return len(self.estimates)

    @property
    def std_err(self) -> float:
        """Standard deviation of the retained replicates."""
        if self.n_retained < 2:
            return float("nan")
        return float(np.std(self.estimates, ddof=1))

    def conf_int(self, alpha: float = ALPHA) -> tuple[float, float]:
        """Percentile interval: the ``alpha/2`` and ``1 - alpha/2`` quantiles."""
        return (
            float(np.percentile(self.estimates, 100 * alpha / 2)),
            float(np.percentile(self.estimates, 100 * (1 - alpha / 2))),
        )


def _replicate(
    data: Dataset,
    statistic: Statistic,
    seed: np.random.SeedSequence,
) -> tuple[float | None, str | None]:
    rng = np.random.default_rng(seed)
    idx = rng.integers(0, data.n, size=data.n)
    try:
        return float(statistic(data.take(idx), rng)), None
    except Exception as exc:
        # Non-convergence, extreme scores, degenerate splits: drop this replicate only.
        return None, f"{type(exc).__name__}: {exc}"


def bootstrap(
    data: Dataset,
    statistic: Statistic,
    n_boot: int = BOOTSTRAP_N,
    seed: int = BOOTSTRAP_SEED,
    n_jobs: int | None = None,
    min_replicates: int = MIN_REPLICATES,
    label: str = "statistic",
) -> BootstrapDistribution:
    """
    Nonparametric bootstrap of ``statistic`` over the records of ``data``.

    Each replicate resamples ``data.n`` records with replacement, hands the
    resample and a replicate-specific ``numpy`` generator to ``statistic``
    and keeps the returned value. Replicate seeds are spawned from one
    ``SeedSequence(seed)``, so the distribution is the same whether the
    replicates run serially or on ``n_jobs`` joblib workers.

    Parameters
    ----------
    data : Dataset
        The full sample.
    statistic : callable
        ``statistic(dataset, rng) -> float``. Any exception it raises discards
        that replicate.
    n_boot : int
        Number of replicates to attempt.
    seed : int
        Root seed.
    n_jobs : int, optional
        Passed to ``joblib.Parallel``; ``None`` or ``1`` runs serially.
    min_replicates : int
        Below this many retained replicates a ``SparseBootstrapWarning`` is
        emitted.
    label : str
        Name used in log messages.

    Raises
    ------
    ``BootstrapError``
        If ``n_boot < 1`` or every replicate failed or was non-finite.
    """
    if n_boot < 1:
        raise BootstrapError(f"Bootstrap needs at least one replicate, got n_boot={n_boot}.")

    seeds = np.random.SeedSequence(seed).spawn(n_boot)
    if n_jobs is None or n_jobs == 1:
        outcomes = [_replicate(data, statistic, s) for s in seeds]
    else:
        outcomes = Parallel(n_jobs=n_jobs)(
            delayed(_replicate)(data, statistic, s) for s in seeds
        )

    values = []
    reasons: Counter[str] = Counter()
    n_nonfinite = 0
    for i, (value, reason) in enumerate(outcomes):
        if reason is not None:
            logger.debug("%s: skipped bootstrap replicate %d (%s)", label, i, reason)
            reasons[reason.split(":", 1)[0]] += 1
        elif not np.isfinite(value):
            logger.debug("%s: dropped non-finite bootstrap replicate %d", label, i)
            n_nonfinite += 1
        else:
            values.append(value)

    n_failed = sum(reasons.values())
    logger.info(
        "%s: %d of %d bootstrap replicates retained (%d failed, %d non-finite)",
        label, len(values), n_boot, n_failed, n_nonfinite,
    )

    if not values:
        detail = ", ".join(f"{k} x{v}" for k, v in reasons.most_common()) or "all non-finite"
        raise BootstrapError(
            f"No valid bootstrap replicates for {label} out of {n_boot} ({detail})."
        )

    if len(values) < min_replicates:
        msg = (
            f"Only {len(values)} of {n_boot} bootstrap replicates for {label} "
            f"survived; percentile interval is unreliable."
        )
        logger.warning(msg)
        warnings.warn(msg, SparseBootstrapWarning, stacklevel=2)

    return BootstrapDistribution(
        estimates=np.asarray(values, dtype=float),
        n_requested=n_boot,
        n_failed=n_failed,
        n_nonfinite=n_nonfinite,
    )
