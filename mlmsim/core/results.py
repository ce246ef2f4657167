"""
Summary statistics for replication tables.

Compares the collected estimates against the known true value and
reports bias, standard-error bias, confidence-interval coverage and the
mean squared error.
"""

import warnings
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from ..errors import DegenerateRatioWarning, DivisionByZeroError, InvalidParameterError
from ..utils.validators import _validate_zero_division
from .simulation import RECORD_COLUMNS


@dataclass(frozen=True)
class SummaryStatistics:
    """Aggregates of a replication table.

    ``relative_bias`` and ``relative_se_bias`` are ``None`` when their
    denominator (the true value, or the SD of the estimates) is zero.
    ``rmse`` holds ``bias**2 + variance``, i.e. the mean squared error.
    """

    n_replications: int
    true_value: float
    mean_estimate: float
    mean_se: float
    sd_estimate: float
    coverage: float
    bias: float
    relative_bias: Optional[float]
    se_bias: float
    relative_se_bias: Optional[float]
    rmse: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_series(self) -> pd.Series:
        """Summary as a Series, for printing or stacking several runs."""
        return pd.Series(self.to_dict(), dtype=object)


def _ratio(numerator: float, denominator: float, name: str, zero_division: str) -> Optional[float]:
    if denominator != 0:
        return numerator / denominator
    msg = f"{name} is undefined: denominator is zero"
    if zero_division == "raise":
        raise DivisionByZeroError(msg)
    warnings.warn(f"{msg}; reported as None", DegenerateRatioWarning, stacklevel=3)
    return None


def _check_table(table: pd.DataFrame):
    missing = [c for c in RECORD_COLUMNS if c not in table.columns]
    if missing:
        raise InvalidParameterError(f"Replication table is missing columns: {missing}")
    if len(table) < 2:
        raise InvalidParameterError(f"At least 2 replications are needed, got {len(table)}")
    values = table[RECORD_COLUMNS].to_numpy(dtype=float)
    if not np.all(np.isfinite(values)):
        raise InvalidParameterError("Replication table contains non-finite values")


def summarize_replications(
    table: pd.DataFrame,
    true_value: float,
    zero_division: str = "sentinel",
) -> SummaryStatistics:
    """Summarize a replication table against the true parameter value.

    Args:
        table: Replication table with ``estimate``, ``se``, ``lower`` and
            ``upper`` columns.
        true_value: Ground-truth value of the estimated parameter.
        zero_division: ``"sentinel"`` reports undefined relative statistics
            as ``None`` (with a ``DegenerateRatioWarning``); ``"raise"``
            raises ``DivisionByZeroError`` instead.

    Returns:
        :class:`SummaryStatistics`. The input table is not modified.

    Raises:
        InvalidParameterError: If the table is malformed or has fewer than
            two rows, or *true_value* is not finite.
        DivisionByZeroError: Only with ``zero_division="raise"``.
    """
    _validate_zero_division(zero_division).raise_if_invalid()
    _check_table(table)
    if not np.isfinite(true_value):
        raise InvalidParameterError(f"true_value must be finite, got {true_value}")

    estimates = table["estimate"].to_numpy(dtype=float)
    ses = table["se"].to_numpy(dtype=float)
    lower = table["lower"].to_numpy(dtype=float)
    upper = table["upper"].to_numpy(dtype=float)
    theta = float(true_value)

    mean_estimate = float(np.mean(estimates))
    mean_se = float(np.mean(ses))
    variance = float(np.var(estimates, ddof=1))
    sd_estimate = float(np.sqrt(variance))

    coverage = float(np.mean((lower <= theta) & (theta <= upper)))
    bias = mean_estimate - theta
    se_bias = mean_se - sd_estimate

    return SummaryStatistics(
        n_replications=len(estimates),
        true_value=theta,
        mean_estimate=mean_estimate,
        mean_se=mean_se,
        sd_estimate=sd_estimate,
        coverage=coverage,
        bias=bias,
        relative_bias=_ratio(bias, theta, "relative_bias", zero_division),
        se_bias=se_bias,
        relative_se_bias=_ratio(se_bias, sd_estimate, "relative_se_bias", zero_division),
        rmse=bias**2 + variance,
    )
