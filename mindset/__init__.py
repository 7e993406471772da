import logging

from .config import CovariateSet, StudyConfig, MINDSET_COVARIATES
from .data import Dataset, load_dataset
from .estimators import PropensityModel, OutcomeModel, ipw_ate, aipw_ate
from .bootstrap import bootstrap, BootstrapDistribution
from .balance import BalanceReport, balance, standardized_mean_differences
from .results import EstimateResult
from .analysis import Assumption, MindsetAnalysis, AnalysisResult
from .simulate import simulate_mindset
from .refutations import RefutationCheck, RefutationReport
from ._exceptions import (
    SchemaError, EstimationError, ConvergenceError, OverlapError,
    BootstrapError, SparseBootstrapWarning,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CovariateSet", "StudyConfig", "MINDSET_COVARIATES",
    "Dataset", "load_dataset",
    "PropensityModel", "OutcomeModel", "ipw_ate", "aipw_ate",
    "bootstrap", "BootstrapDistribution",
    "BalanceReport", "balance", "standardized_mean_differences",
    "EstimateResult",
    "MindsetAnalysis", "AnalysisResult",
    "simulate_mindset",
    "Assumption", "RefutationCheck", "RefutationReport",
    "SchemaError", "EstimationError", "ConvergenceError", "OverlapError",
    "BootstrapError", "SparseBootstrapWarning",
]
