from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm

from ..data import Dataset
from .._exceptions import EstimationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class OutcomeModel:
    """
    Two linear regressions of outcome on the covariates, one per arm.

    ``control_params`` is fit on control records only and ``treated_params``
    on treated records only; ``predict()`` then gives both potential-outcome
    predictions for every record of another (disjoint) dataset.
    """

    control_params: pd.Series
    treated_params: pd.Series

    @classmethod
    def fit(cls, data: Dataset) -> OutcomeModel:
        """
        Fit the per-arm regressions on ``data``.

        Raises
        ------
        ``EstimationError``
            If either arm has no records.
        """
        X = sm.add_constant(data.design, has_constant="add")
        y = data.outcome
        w = data.treatment

        params = {}
        for arm in (0, 1):
            mask = w == arm
            if not mask.any():
                label = "treated" if arm == 1 else "control"
                raise EstimationError(f"Outcome model has no {label} records to fit.")
            res = sm.OLS(y[mask], X.loc[mask]).fit()
            params[arm] = pd.Series(np.asarray(res.params, dtype=float), index=X.columns)

        return cls(control_params=params[0], treated_params=params[1])

    def predict(self, data: Dataset) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(mu0, mu1)``: predicted control and treated outcomes."""
        X = data.design_matrix
        b0 = self.control_params.to_numpy()
        b1 = self.treated_params.to_numpy()
        if X.shape[1] != len(b0) - 1:
            raise ValueError("Dataset design columns do not match the fitted outcome model.")
        return b0[0] + X @ b0[1:], b1[0] + X @ b1[1:]


# ── Regression estimators ──────────────────────────────────────────────────────

_TREATMENT_TERM = "treatment"


def _ols(y: np.ndarray, X: pd.DataFrame):
    return sm.OLS(y, sm.add_constant(X, has_constant="add")).fit()


def difference_in_means(data: Dataset):
    """
    Unadjusted estimate: OLS of outcome on the treatment indicator alone.

    The coefficient equals the difference in group means. Returns the
    statsmodels result; the effect is ``res.params["treatment"]``.
    """
    X = pd.DataFrame({_TREATMENT_TERM: data.treatment})
    return _ols(data.outcome, X)


def regression_adjustment(data: Dataset):
    """
    Regression-adjusted estimate: OLS of outcome on treatment plus every
    design column. Returns the statsmodels result, with the effect at
    ``res.params["treatment"]``.
    """
    X = data.design
    if _TREATMENT_TERM in X.columns:
        raise ValueError(
            f"Design column '{_TREATMENT_TERM}' clashes with the treatment regressor; "
            f"rename that covariate."
        )
    X.insert(0, _TREATMENT_TERM, data.treatment)
    return _ols(data.outcome, X)


def difference_in_means_statistic(data: Dataset, rng: np.random.Generator | None = None) -> float:
    """Bootstrap statistic for the unadjusted difference in means."""
    w = data.treatment
    y = data.outcome
    if w.min() == w.max():
        raise EstimationError("Resample has only one treatment group.")
    return float(y[w == 1].mean() - y[w == 0].mean())


def regression_statistic(data: Dataset, rng: np.random.Generator | None = None) -> float:
    """Bootstrap statistic for the regression-adjusted ATE."""
    if data.treatment.min() == data.treatment.max():
        raise EstimationError("Resample has only one treatment group.")
    return float(regression_adjustment(data).params[_TREATMENT_TERM])
