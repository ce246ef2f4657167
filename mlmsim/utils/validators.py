"""
Validation utilities for MLMSim.

This module provides validation functions for simulation parameters,
runner settings, and the mathematical constraints on the random-effects
covariance matrix.
"""

from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from ..errors import InvalidParameterError

__all__ = []

# Relative tolerance for negative eigenvalues caused by floating point noise
_PSD_TOL = 1e-10

_FAILURE_POLICIES = ("raise", "exclude")
_ZERO_DIVISION_MODES = ("sentinel", "raise")


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``InvalidParameterError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise InvalidParameterError(error_msg)


def _is_int(value: Any) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _validate_count(value: Any, name: str, min_val: int = 1) -> _ValidationResult:
    """Validate a positive integer count (clusters, cluster size, replications)."""
    errors = []
    if not _is_int(value):
        errors.append(f"{name} must be an integer, got {type(value).__name__}")
    elif value < min_val:
        errors.append(f"{name} must be >= {min_val}, got {value}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_variance(value: Any, name: str, strictly_positive: bool = False) -> _ValidationResult:
    """Validate a variance: finite real, ``>= 0`` (or ``> 0`` when strict)."""
    errors = []
    if not _is_real(value):
        errors.append(f"{name} must be a real number, got {type(value).__name__}")
    elif not np.isfinite(value):
        errors.append(f"{name} must be finite, got {value}")
    elif strictly_positive and value <= 0:
        errors.append(f"{name} must be > 0, got {value}")
    elif value < 0:
        errors.append(f"{name} must be >= 0, got {value}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_covariance_matrix(G: Any, dim: Optional[int] = 2) -> _ValidationResult:
    """Validate a random-effects covariance matrix.

    Checks shape, finiteness, symmetry and positive semi-definiteness.
    Singular PSD matrices (including the zero matrix) are accepted.
    """
    errors: List[str] = []

    try:
        G_arr = np.asarray(G, dtype=float)
    except (TypeError, ValueError):
        errors.append("G must be a numeric matrix")
        return _ValidationResult(False, errors, [])

    if G_arr.ndim != 2 or G_arr.shape[0] != G_arr.shape[1]:
        errors.append(f"G must be a square matrix, got shape {G_arr.shape}")
        return _ValidationResult(False, errors, [])

    if dim is not None and G_arr.shape[0] != dim:
        errors.append(f"G must be {dim}x{dim}, got {G_arr.shape[0]}x{G_arr.shape[1]}")
        return _ValidationResult(False, errors, [])

    if not np.all(np.isfinite(G_arr)):
        errors.append("G must contain only finite values")
        return _ValidationResult(False, errors, [])

    if not np.allclose(G_arr, G_arr.T):
        errors.append("G must be symmetric")
        return _ValidationResult(False, errors, [])

    try:
        eigenvals = np.linalg.eigvalsh(G_arr)
    except np.linalg.LinAlgError:
        errors.append("Cannot compute eigenvalues of G")
        return _ValidationResult(False, errors, [])

    scale = max(1.0, float(np.max(np.abs(eigenvals))))
    if np.any(eigenvals < -_PSD_TOL * scale):
        errors.append(f"G must be positive semi-definite (smallest eigenvalue {eigenvals.min():.4g})")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_fixed_effects(fixed_effects: Any) -> _ValidationResult:
    """Validate the fixed-effect vector (intercept, slope)."""
    errors = []
    try:
        gamma = np.asarray(fixed_effects, dtype=float)
    except (TypeError, ValueError):
        return _ValidationResult(False, ["fixed_effects must be numeric"], [])

    if gamma.shape != (2,):
        errors.append(f"fixed_effects must have length 2 (intercept, slope), got shape {gamma.shape}")
    elif not np.all(np.isfinite(gamma)):
        errors.append("fixed_effects must be finite")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_simulation_parameters(
    n_clusters: Any,
    cluster_size: Any,
    fixed_effects: Any,
    G: Any,
    residual_variance: Any,
) -> _ValidationResult:
    """Validate a full parameter set, collecting every problem at once."""
    errors: List[str] = []
    warnings: List[str] = []

    for result in (
        _validate_count(n_clusters, "n_clusters"),
        _validate_count(cluster_size, "cluster_size"),
        _validate_fixed_effects(fixed_effects),
        _validate_covariance_matrix(G),
        _validate_variance(residual_variance, "residual_variance"),
    ):
        errors.extend(result.errors)
        warnings.extend(result.warnings)

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_replications(n_replications: Any) -> _ValidationResult:
    """Validate the number of replications (at least 2 for an SD)."""
    result = _validate_count(n_replications, "n_replications", min_val=2)
    if result.is_valid and n_replications < 100:
        result.warnings.append(f"Low replication count ({n_replications}). Consider at least 100 for stable summaries.")
    return result


def _validate_seed(seed: Any) -> _ValidationResult:
    errors = []
    if seed is not None and (not _is_int(seed) or seed < 0):
        errors.append(f"seed must be a non-negative integer or None, got {seed!r}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_failure_policy(policy: Any) -> _ValidationResult:
    errors = []
    if policy not in _FAILURE_POLICIES:
        errors.append(f"failure_policy must be one of {list(_FAILURE_POLICIES)}, got {policy!r}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_zero_division(mode: Any) -> _ValidationResult:
    errors = []
    if mode not in _ZERO_DIVISION_MODES:
        errors.append(f"zero_division must be one of {list(_ZERO_DIVISION_MODES)}, got {mode!r}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_parallel_settings(enable: Any, n_cores: Optional[int]) -> Tuple[Tuple[bool, int], _ValidationResult]:
    """Validate parallel processing settings.

    Args:
        enable: True or False
        n_cores: Number of CPU cores (positive int or None for auto)

    Returns:
        ((enable, n_cores), ValidationResult)
    """
    import multiprocessing as mp

    errors = []

    if enable not in (True, False):
        errors.append(f"enable must be True or False, got {enable!r}")
        return (False, 1), _ValidationResult(False, errors, [])

    max_cores = mp.cpu_count()
    validated_n_cores = max(1, max_cores // 2)

    if n_cores is not None:
        if not _is_int(n_cores) or n_cores <= 0:
            errors.append(f"n_cores must be a positive integer, got {n_cores}")
        else:
            validated_n_cores = min(n_cores, max_cores)

    return (bool(enable), validated_n_cores), _ValidationResult(len(errors) == 0, errors, [])


def _validate_confidence_level(level: Union[int, float]) -> _ValidationResult:
    errors = []
    if not _is_real(level) or not 0 < level < 1:
        errors.append(f"level must be strictly between 0 and 1, got {level!r}")
    return _ValidationResult(len(errors) == 0, errors, [])
