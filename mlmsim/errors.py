"""
Exception and warning types for MLMSim.

Parameter problems are raised before any random draw is made. Model-fitting
failures propagate out of the replication loop unless the runner was told to
exclude failed replications.
"""


class MLMSimError(Exception):
    """Base class for all MLMSim errors."""

    pass


class InvalidParameterError(MLMSimError, ValueError):
    """Raised when simulation parameters fail validation (non-PSD ``G``, J < 1, ...)."""

    pass


class FitDivergedError(MLMSimError, RuntimeError):
    """Raised when the mixed-model optimizer does not converge."""

    pass


class SingularFitError(FitDivergedError):
    """Raised when a fit produces a singular or unusable covariance estimate."""

    pass


class DivisionByZeroError(MLMSimError, ZeroDivisionError):
    """Raised when a relative summary statistic has a zero denominator."""

    pass


class DegenerateRatioWarning(UserWarning):
    """Issued when a relative statistic is replaced by its ``None`` sentinel."""

    pass


class ReplicationFailureWarning(UserWarning):
    """Issued when failed replications are excluded from a run."""

    pass
