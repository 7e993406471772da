"""
Synthetic growth-mindset data with a known treatment effect.

The columns match ``MINDSET_COVARIATES`` and the default outcome/treatment
names, so a simulated frame drops straight into ``Dataset.from_frame``.
Treatment follows a logistic model and the outcome a linear model, both in
the design columns, so the propensity and outcome models of this package
are correctly specified and every adjusted estimator targets ``effect``.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
from scipy.special import expit

from .config import OUTCOME, TREATMENT

_ETHNICITY_LEVELS = np.array([1, 2, 3, 4, 5])
_ETHNICITY_PROBS  = np.array([0.40, 0.25, 0.15, 0.12, 0.08])
_ETHNICITY_EFFECT = np.array([0.0, -0.3, 0.2, 0.4, -0.1])


def simulate_mindset(
    n: int = 1000,
    effect: float = 5.0,
    confounding: float = 1.0,
    noise: float = 1.0,
    seed: int = 0,
) -> pd.DataFrame:
    """
    Draw ``n`` students.

    Parameters
    ----------
    n : int
        Number of records.
    effect : float
        Injected ATE: the outcome of every treated student is shifted by
        exactly this amount.
    confounding : float
        Scales the covariate coefficients of the treatment model. ``0`` gives
        a randomised experiment with P(treatment) = 0.5.
    noise : float
        Standard deviation of the Gaussian outcome noise.
    seed : int
        Seed for ``numpy.random.default_rng``.
    """
    rng = np.random.default_rng(seed)

    success_expect         = rng.integers(1, 8, size=n)
    ethnicity              = rng.choice(_ETHNICITY_LEVELS, size=n, p=_ETHNICITY_PROBS)
    gender                 = rng.choice([1, 2], size=n)
    frst_in_family         = rng.binomial(1, 0.35, size=n)
    school_urbanicity      = rng.integers(0, 5, size=n)
    school_mindset         = rng.normal(size=n)
    school_achievement     = rng.normal(size=n)
    school_ethnic_minority = rng.normal(size=n)
    school_poverty         = rng.normal(size=n)
    school_size            = rng.normal(size=n)

    logit = confounding * (
        0.25 * (success_expect - 4)
        - 0.40 * school_mindset
        + 0.30 * frst_in_family
        + 0.20 * (gender == 2)
        + 0.20 * school_achievement
        - 0.15
    )
    intervention = rng.binomial(1, expit(logit))

    baseline = (
        0.30 * (success_expect - 4)
        - 0.50 * school_mindset
        + 0.40 * school_achievement
        - 0.30 * frst_in_family
        + 0.15 * (gender == 2)
        - 0.20 * school_poverty
        + 0.10 * school_urbanicity
        + _ETHNICITY_EFFECT[np.searchsorted(_ETHNICITY_LEVELS, ethnicity)]
    )
    achievement_score = effect * intervention + baseline + rng.normal(scale=noise, size=n)

    return pd.DataFrame({
        OUTCOME:                  achievement_score,
        TREATMENT:                intervention,
        "success_expect":         success_expect,
        "ethnicity":              ethnicity,
        "gender":                 gender,
        "frst_in_family":         frst_in_family,
        "school_urbanicity":      school_urbanicity,
        "school_mindset":         school_mindset,
        "school_achievement":     school_achievement,
        "school_ethnic_minority": school_ethnic_minority,
        "school_poverty":         school_poverty,
        "school_size":            school_size,
    })
