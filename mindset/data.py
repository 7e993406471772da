from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from ._exceptions import SchemaError
from .config import StudyConfig

logger = logging.getLogger(__name__)


class Dataset:
    """
    The study data: outcome, binary treatment and covariates, plus the design
    matrix built from ``config.covariates``.

    A ``Dataset`` is never mutated after construction. ``take()`` returns a new
    dataset over a subset (or resample) of rows and ``with_columns()`` returns
    a copy of the underlying frame with derived columns appended, so bootstrap
    replicates always work on their own copies.

    Build one with ``Dataset.from_frame(df, config)`` or ``load_dataset(path)``.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        design: pd.DataFrame,
        config: StudyConfig,
    ) -> None:
        self._frame = frame
        self._design = design
        self._config = config
        self._y = frame[config.outcome].to_numpy(dtype=float)
        self._w = frame[config.treatment].to_numpy(dtype=float)
        self._x = design.to_numpy(dtype=float)

    @classmethod
    def from_frame(cls, data: pd.DataFrame, config: StudyConfig | None = None) -> Dataset:
        """
        Validate ``data`` and wrap it.

        Raises
        ------
        ``SchemaError``
            If any required column is absent, or treatment is not binary 0/1
            with both groups present.
        """
        config = config or StudyConfig()

        missing = [c for c in config.required_columns if c not in data.columns]
        if missing:
            raise SchemaError(
                f"Required columns not found in dataframe: {missing}\n"
                f"Expected outcome '{config.outcome}', treatment "
                f"'{config.treatment}' and covariates {list(config.covariates.columns)}."
            )

        cols = list(config.required_columns)
        frame = data[cols]

        # Records without treatment or outcome cannot enter any estimator.
        core = frame[[config.outcome, config.treatment]].notna().all(axis=1)
        n_core = int((~core).sum())
        if n_core:
            logger.warning("Dropping %d records with missing treatment or outcome.", n_core)
        complete = frame.notna().all(axis=1)
        n_cov = int((core & ~complete).sum())
        if n_cov:
            logger.warning("Dropping %d records with missing covariates.", n_cov)
        frame = frame.loc[complete].reset_index(drop=True)

        t_vals = set(frame[config.treatment].unique())
        if not t_vals <= {0, 1, 0.0, 1.0}:
            raise SchemaError(
                f"Treatment '{config.treatment}' must be binary (0/1). "
                f"Found values: {sorted(t_vals)}"
            )
        if not ({0, 1} <= {int(v) for v in t_vals}):
            raise SchemaError(
                f"Treatment '{config.treatment}' must contain both 0 and 1. "
                f"Found only: {t_vals}"
            )

        design = config.covariates.design(frame)
        logger.info(
            "Loaded %d records (%d treated) with %d design columns.",
            len(frame), int(frame[config.treatment].sum()), design.shape[1],
        )
        return cls(frame, design, config)

    # ── Views ────────────────────────────────────────────────────────────────

    @property
    def config(self) -> StudyConfig:
        return self._config

    @property
    def n(self) -> int:
        """Number of records."""
        return len(self._y)

    def __len__(self) -> int:
        return self.n

    @property
    def outcome(self) -> np.ndarray:
        """Outcome values as a float array (read-only view)."""
        return _readonly(self._y)

    @property
    def treatment(self) -> np.ndarray:
        """Treatment indicator as a float 0/1 array (read-only view)."""
        return _readonly(self._w)

    @property
    def design(self) -> pd.DataFrame:
        """Design matrix (no intercept), one column per regressor."""
        return self._design.copy()

    @property
    def design_matrix(self) -> np.ndarray:
        """Design matrix as a float array (read-only view)."""
        return _readonly(self._x)

    @property
    def design_columns(self) -> list[str]:
        return list(self._design.columns)

    @property
    def frame(self) -> pd.DataFrame:
        """A copy of the raw study columns."""
        return self._frame.copy()

    # ── Derived datasets ─────────────────────────────────────────────────────

    def take(self, idx) -> Dataset:
        """New dataset over rows ``idx`` (positions; repeats allowed)."""
        idx = np.asarray(idx)
        return Dataset(
            self._frame.iloc[idx].reset_index(drop=True),
            self._design.iloc[idx].reset_index(drop=True),
            self._config,
        )

    def with_treatment(self, treatment) -> Dataset:
        """Copy with the treatment column replaced (used by placebo checks)."""
        frame = self._frame.assign(**{self._config.treatment: np.asarray(treatment, dtype=float)})
        return Dataset(frame, self._design, self._config)

    def with_design_column(self, name: str, values) -> Dataset:
        """Copy with an extra regressor appended to the design matrix."""
        while name in self._design.columns:
            name = "_" + name
        design = self._design.assign(**{name: np.asarray(values, dtype=float)})
        return Dataset(self._frame, design, self._config)

    def with_columns(self, **columns) -> pd.DataFrame:
        """Copy of the raw frame with derived per-record columns appended."""
        return self._frame.assign(**columns)

    def groups(self, column: str | None = None) -> dict[int, pd.Series]:
        """
        Raw values of ``column`` (default: the outcome) split by treatment
        group, keyed 0 (control) and 1 (treated). Intended for histograms and
        box plots.
        """
        column = column or self._config.outcome
        if column not in self._frame.columns:
            raise KeyError(f"Column '{column}' not in dataset.")
        values = self._frame[column]
        return {
            0: values[self._w == 0].reset_index(drop=True),
            1: values[self._w == 1].reset_index(drop=True),
        }

    def __repr__(self) -> str:
        return (
            f"Dataset(n={self.n}, treated={int(self._w.sum())}, "
            f"outcome={self._config.outcome!r}, treatment={self._config.treatment!r})"
        )


def _readonly(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


def load_dataset(path, config: StudyConfig | None = None, **read_csv_kwargs) -> Dataset:
    """
    Read a delimited file with ``pandas.read_csv`` and validate it.

    Extra keyword arguments (``sep``, ``encoding``, ...) go to ``read_csv``.
    Fails fast with ``SchemaError`` if any required column is missing.
    """
    logger.info("Reading study data from %s", path)
    return Dataset.from_frame(pd.read_csv(path, **read_csv_kwargs), config)
