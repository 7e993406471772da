from .propensity import PropensityModel, propensity_scores
from .weighting import ipw_ate, ipw_weights, ipw_statistic, check_overlap, overlap_mask
from .outcome import OutcomeModel, difference_in_means, regression_adjustment
from .aipw import aipw_ate, aipw_scores, aipw_statistic, aipw_estimate_with_se

__all__ = [
    "PropensityModel", "propensity_scores",
    "ipw_ate", "ipw_weights", "ipw_statistic", "check_overlap", "overlap_mask",
    "OutcomeModel", "difference_in_means", "regression_adjustment",
    "aipw_ate", "aipw_scores", "aipw_statistic", "aipw_estimate_with_se",
]
