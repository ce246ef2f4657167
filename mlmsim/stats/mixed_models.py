"""Linear mixed-effects fitting for simulated growth data.

Wraps statsmodels ``MixedLM`` (REML) behind :class:`GrowthModelFit`, a
fixed-shape result exposing point estimates, the fixed-effects covariance
matrix, and Wald confidence intervals.

Convergence is judged by the ``converged`` flag, not by warnings:
statsmodels convergence warnings are silenced inside the retry ladder and a
fit that never converges raises :class:`~mlmsim.errors.FitDivergedError`.
"""

import warnings
from dataclasses import dataclass
from typing import NamedTuple, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..errors import FitDivergedError, InvalidParameterError, SingularFitError
from ..utils.validators import _validate_confidence_level
from .data_generation import DATASET_COLUMNS

# (optimizer, maxiter) attempts, in order
_FIT_ATTEMPTS = (
    ("lbfgs", 200),
    ("powell", 1000),
)

# smallest random-effects eigenvalue, relative to max(1, largest), treated as zero
_SINGULAR_RE_TOL = 1e-6


class ReplicationRecord(NamedTuple):
    """Per-replication result for one fixed effect."""

    estimate: float
    se: float
    lower: float
    upper: float


@dataclass(frozen=True, eq=False)
class GrowthModelFit:
    """Fitted mixed model, reduced to what the replication loop needs.

    Attributes:
        params: Fixed-effect estimates indexed by predictor name
            (``"Intercept"``, ``"time"``).
        cov_params: Covariance matrix of the fixed effects.
        random_slopes: Whether a random slope for ``time`` was fitted.
        cov_re: Estimated random-effects covariance matrix.
        scale: Estimated residual variance.
    """

    params: pd.Series
    cov_params: pd.DataFrame
    random_slopes: bool
    cov_re: pd.DataFrame
    scale: float

    def _check_name(self, name: str):
        if name not in self.params.index:
            raise KeyError(f"Unknown fixed effect {name!r}; available: {list(self.params.index)}")

    def se(self, name: str) -> float:
        """Standard error: square root of the covariance diagonal entry."""
        self._check_name(name)
        return float(np.sqrt(self.cov_params.loc[name, name]))

    def conf_int(self, name: str, level: float = 0.95) -> Tuple[float, float]:
        """Wald confidence interval ``estimate -/+ z * se``."""
        self._check_name(name)
        _validate_confidence_level(level).raise_if_invalid()
        z = stats.norm.ppf(0.5 + level / 2.0)
        estimate = float(self.params[name])
        half_width = z * self.se(name)
        return estimate - half_width, estimate + half_width

    def record(self, name: str, level: float = 0.95) -> ReplicationRecord:
        """Collect estimate, SE and CI bounds for *name*."""
        lower, upper = self.conf_int(name, level)
        return ReplicationRecord(float(self.params[name]), self.se(name), lower, upper)


def _check_random_effects(cov_re: np.ndarray):
    if not np.all(np.isfinite(cov_re)):
        raise SingularFitError("Random-effects covariance estimate is not finite")
    eigenvals = np.linalg.eigvalsh(cov_re)
    if eigenvals[0] <= _SINGULAR_RE_TOL * max(1.0, abs(eigenvals[-1])):
        raise SingularFitError(
            f"Random-effects covariance estimate is singular (smallest eigenvalue {eigenvals[0]:.3g})"
        )


def _check_dataset(data: pd.DataFrame):
    missing = [c for c in DATASET_COLUMNS if c not in data.columns]
    if missing:
        raise InvalidParameterError(f"Dataset is missing columns: {missing}")
    if data["id"].nunique() < 2:
        raise InvalidParameterError("At least two clusters are needed to fit a mixed model")


def fit_growth_model(data: pd.DataFrame, random_slopes: bool = False) -> GrowthModelFit:
    """Fit ``y ~ time`` with random intercepts (and optionally slopes) by ``id``.

    Args:
        data: Dataset with columns ``y``, ``time``, ``id``.
        random_slopes: ``False`` for a random-intercept model,
            ``True`` to add a correlated random slope for ``time``.

    Returns:
        A :class:`GrowthModelFit`.

    Raises:
        InvalidParameterError: If the dataset cannot be modelled.
        FitDivergedError: If no optimizer attempt converges.
        SingularFitError: If the fixed-effects covariance is unusable or the
            random-effects covariance estimate is singular (a variance on the
            zero boundary, or a perfect intercept-slope correlation).
    """
    from statsmodels.regression.mixed_linear_model import MixedLM

    _check_dataset(data)

    re_formula = "~time" if random_slopes else "1"
    result = None
    failure_reason = None

    for method, max_iter in _FIT_ATTEMPTS:
        try:
            model = MixedLM.from_formula("y ~ time", data=data, groups=data["id"], re_formula=re_formula)
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                candidate = model.fit(reml=True, method=method, maxiter=max_iter, full_output=False)
        except np.linalg.LinAlgError as e:
            failure_reason = f"LinAlgError: {e}"
            continue
        except (ValueError, FloatingPointError) as e:
            failure_reason = f"{type(e).__name__}: {e}"
            continue

        if getattr(candidate, "converged", False):
            result = candidate
            break
        failure_reason = f"{method} did not converge in {max_iter} iterations"

    if result is None:
        if failure_reason is not None and failure_reason.startswith("LinAlgError"):
            raise SingularFitError(f"Mixed model fit failed: {failure_reason}")
        raise FitDivergedError(f"Mixed model fit failed: {failure_reason}")

    fe_names = list(result.fe_params.index)
    cov_fe = result.cov_params().loc[fe_names, fe_names]
    diag = np.diag(cov_fe.values)
    if not np.all(np.isfinite(diag)) or np.any(diag <= 0):
        raise SingularFitError("Fixed-effects covariance matrix has non-finite or non-positive variances")

    cov_re = pd.DataFrame(result.cov_re)
    _check_random_effects(cov_re.to_numpy(dtype=float))

    return GrowthModelFit(
        params=result.fe_params.copy(),
        cov_params=cov_fe.copy(),
        random_slopes=random_slopes,
        cov_re=cov_re.copy(),
        scale=float(result.scale),
    )
