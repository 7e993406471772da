from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.special import expit
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ..data import Dataset
from .._exceptions import ConvergenceError

logger = logging.getLogger(__name__)

# Scores are clipped this far inside (0, 1) so weights stay finite for any input.
_EPS = 1e-12


@dataclass(frozen=True, eq=False)
class PropensityModel:
    """
    A fitted logistic regression of treatment on the study covariates.

    Obtain one with ``PropensityModel.fit(dataset)``; the fitted coefficients
    live on the returned object and nowhere else, so a bootstrap replicate's
    model can never leak into another replicate.
    """

    params: pd.Series
    """Intercept (``const``) followed by one coefficient per design column."""

    n_obs: int
    """Number of records the model was fit on."""

    @classmethod
    def fit(cls, data: Dataset) -> PropensityModel:
        """
        Fit ``P(treatment = 1 | covariates)`` by maximum likelihood.

        Raises
        ------
        ``ConvergenceError``
            On perfect separation, a singular Hessian, or when Newton's method
            stops before converging. Bootstrap callers skip the replicate.
        """
        w = data.treatment
        if w.min() == w.max():
            raise ConvergenceError("Propensity model needs both treated and control records.")

        X = sm.add_constant(data.design, has_constant="add")
        with warnings.catch_warnings():
            warnings.simplefilter("error", PerfectSeparationWarning)
            warnings.simplefilter("ignore", ConvergenceWarning)
            warnings.simplefilter("ignore", RuntimeWarning)
            try:
                res = sm.Logit(np.array(w), X).fit(disp=0)
            except (PerfectSeparationError, PerfectSeparationWarning) as exc:
                raise ConvergenceError(f"Perfect separation in propensity model: {exc}") from exc
            except np.linalg.LinAlgError as exc:
                raise ConvergenceError(f"Singular propensity model: {exc}") from exc

        if not res.mle_retvals.get("converged", False):
            raise ConvergenceError(
                f"Propensity model did not converge after "
                f"{res.mle_retvals.get('iterations', '?')} iterations."
            )
        params = pd.Series(np.asarray(res.params, dtype=float), index=X.columns)
        if not np.all(np.isfinite(params.values)):
            raise ConvergenceError("Propensity model produced non-finite coefficients.")

        logger.debug("Propensity model fit on %d records.", data.n)
        return cls(params=params, n_obs=data.n)

    @property
    def columns(self) -> list[str]:
        """Design columns the model expects, without the intercept."""
        return [c for c in self.params.index if c != "const"]

    def linear_predictor(self, data: Dataset) -> np.ndarray:
        beta = self.params.to_numpy()
        return beta[0] + data.design_matrix @ beta[1:]

    def predict(self, data: Dataset) -> np.ndarray:
        """Propensity score of every record in ``data``, strictly inside (0, 1)."""
        if data.design_columns != self.columns:
            raise ValueError(
                "Dataset design columns do not match the fitted propensity model: "
                f"{data.design_columns} vs {self.columns}"
            )
        return np.clip(expit(self.linear_predictor(data)), _EPS, 1.0 - _EPS)


def propensity_scores(data: Dataset) -> np.ndarray:
    """Fit a propensity model on ``data`` and score the same records."""
    return PropensityModel.fit(data).predict(data)
