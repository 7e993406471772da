from __future__ import annotations

from dataclasses import dataclass, field, replace as _replace

import pandas as pd

BOOTSTRAP_N      = 100
BOOTSTRAP_SEED   = 42
TRIM_BOUNDS      = (0.01, 0.99)
FIT_FRACTION     = 0.5
ALPHA            = 0.05
MIN_REPLICATES   = 20

OUTCOME   = "achievement_score"
TREATMENT = "intervention"


@dataclass(frozen=True)
class CovariateSet:
    """
    The covariates every model in the study conditions on.

    Propensity model, outcome model and balance diagnostic all read their
    columns from the same ``CovariateSet`` so the estimators cannot drift
    apart. Numeric covariates enter the design matrix as-is; categorical
    covariates are one-hot encoded with the first (sorted) level dropped.

    Example::

        covariates = CovariateSet(
            numeric=("school_mindset", "school_poverty"),
            categorical=("ethnicity",),
        )
        X = covariates.design(df)
    """

    numeric: tuple[str, ...]
    """Columns used directly as real-valued regressors."""

    categorical: tuple[str, ...] = ()
    """Columns expanded into indicator dummies."""

    def __post_init__(self) -> None:
        overlap = set(self.numeric) & set(self.categorical)
        if overlap:
            raise ValueError(
                f"Covariates declared both numeric and categorical: {sorted(overlap)}"
            )
        if not self.numeric and not self.categorical:
            raise ValueError("CovariateSet needs at least one covariate.")

    @property
    def columns(self) -> tuple[str, ...]:
        """All raw covariate columns, numeric first."""
        return tuple(self.numeric) + tuple(self.categorical)

    def design(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Build the float design matrix (no intercept) for ``data``.

        Call this once on the full dataset: resamples and splits slice rows of
        the result, so every fit sees the same columns even when a category
        happens to be absent from a subsample.
        """
        parts = [data[list(self.numeric)].astype(float)]
        for col in self.categorical:
            levels = sorted(data[col].dropna().unique())
            cat = pd.Categorical(data[col], categories=levels)
            dummies = pd.get_dummies(cat, prefix=col, drop_first=True, dtype=float)
            dummies.index = data.index
            parts.append(dummies)
        return pd.concat(parts, axis=1)


MINDSET_COVARIATES = CovariateSet(
    numeric=(
        "success_expect",
        "frst_in_family",
        "school_mindset",
        "school_achievement",
        "school_ethnic_minority",
        "school_poverty",
        "school_size",
    ),
    categorical=("ethnicity", "gender", "school_urbanicity"),
)


@dataclass(frozen=True)
class StudyConfig:
    """
    Everything a ``MindsetAnalysis`` run needs beyond the data itself.

    The defaults reproduce the growth-mindset study: 100 bootstrap replicates
    seeded at 42, replicates discarded when any propensity score leaves
    ``(0.01, 0.99)``, and a 50/50 fit/estimate split for the AIPW outcome
    models.
    """

    outcome: str = OUTCOME
    treatment: str = TREATMENT
    covariates: CovariateSet = field(default=MINDSET_COVARIATES)
    n_boot: int = BOOTSTRAP_N
    seed: int = BOOTSTRAP_SEED
    trim: tuple[float, float] = TRIM_BOUNDS
    fit_fraction: float = FIT_FRACTION
    alpha: float = ALPHA
    min_replicates: int = MIN_REPLICATES
    n_jobs: int | None = None
    bootstrap_all: bool = False

    def __post_init__(self) -> None:
        if self.outcome == self.treatment:
            raise ValueError("Treatment and outcome must be different variables.")
        for label, var in [("Treatment", self.treatment), ("Outcome", self.outcome)]:
            if var in self.covariates.columns:
                raise ValueError(f"{label} '{var}' cannot also be a covariate.")
        lo, hi = self.trim
        if not 0.0 <= lo < hi <= 1.0:
            raise ValueError(f"Trimming bounds must satisfy 0 <= lo < hi <= 1, got {self.trim}.")
        if not 0.0 < self.fit_fraction < 1.0:
            raise ValueError(f"fit_fraction must be in (0, 1), got {self.fit_fraction}.")
        if not 0.0 < self.alpha < 1.0:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}.")
        if self.n_boot < 0:
            raise ValueError(f"n_boot must be non-negative, got {self.n_boot}.")

    @property
    def required_columns(self) -> tuple[str, ...]:
        """Outcome, treatment and every covariate column."""
        return (self.outcome, self.treatment) + self.covariates.columns

    def replace(self, **changes) -> StudyConfig:
        """Return a copy with ``changes`` applied (validated again)."""
        return _replace(self, **changes)
