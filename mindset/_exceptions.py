class SchemaError(ValueError):
    """
    Raised when the input data cannot be used for estimation at all: required
    columns are absent, or the treatment column is not a binary 0/1 indicator.
    """
    pass


class EstimationError(Exception):
    """Raised when a single estimation cannot be carried out on a sample."""
    pass


class ConvergenceError(EstimationError):
    """
    Raised when the propensity model cannot be fit: perfect separation, a
    singular Hessian, or the optimiser stopping before convergence.
    """
    pass


class OverlapError(EstimationError):
    """Raised when propensity scores fall outside the trimming bounds."""
    pass


class BootstrapError(Exception):
    """Raised when no bootstrap replicate is available to build an interval."""
    pass


class SparseBootstrapWarning(UserWarning):
    """Emitted when too few bootstrap replicates survive to trust the percentiles."""
    pass
