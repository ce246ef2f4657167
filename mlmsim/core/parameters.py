"""
Immutable simulation parameters for the two-level linear growth model.

A ``SimulationParameters`` instance replaces the module-level constants a
teaching script would normally use (``J``, ``CS``, ``GAMMA`` ...). It is
validated once on construction and then passed explicitly to the data
generator and the replication runner.
"""

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from ..utils.validators import _validate_simulation_parameters, _validate_variance

ArrayLike = Union[Sequence[float], Sequence[Sequence[float]], np.ndarray]


def _frozen_array(values: ArrayLike) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False, repr=False)
class SimulationParameters:
    """Parameters of one synthetic growth dataset.

    Attributes:
        n_clusters: Number of clusters ``J`` (individuals).
        cluster_size: Measurements per cluster ``cs``; identical for every
            cluster (balanced design).
        fixed_effects: ``(intercept, slope)`` population coefficients.
        G: ``2x2`` covariance matrix of the (intercept, slope) random effects.
        residual_variance: Observation-level noise variance ``sigma^2``.

    Raises:
        InvalidParameterError: If any value fails validation.
    """

    n_clusters: int
    cluster_size: int
    fixed_effects: np.ndarray
    G: np.ndarray
    residual_variance: float

    def __post_init__(self):
        _validate_simulation_parameters(
            self.n_clusters,
            self.cluster_size,
            self.fixed_effects,
            self.G,
            self.residual_variance,
        ).raise_if_invalid()
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "n_clusters", int(self.n_clusters))
        object.__setattr__(self, "cluster_size", int(self.cluster_size))
        object.__setattr__(self, "fixed_effects", _frozen_array(self.fixed_effects))
        object.__setattr__(self, "G", _frozen_array(self.G))
        object.__setattr__(self, "residual_variance", float(self.residual_variance))

    @property
    def n_observations(self) -> int:
        """Total number of rows ``J * cs``."""
        return self.n_clusters * self.cluster_size

    @property
    def intercept(self) -> float:
        return float(self.fixed_effects[0])

    @property
    def slope(self) -> float:
        return float(self.fixed_effects[1])

    def true_value(self, parameter: str) -> float:
        """Ground-truth fixed effect for a fitted predictor name.

        Args:
            parameter: ``"Intercept"`` or ``"time"``.

        Raises:
            KeyError: For any other name.
        """
        if parameter == "Intercept":
            return self.intercept
        if parameter == "time":
            return self.slope
        raise KeyError(f"Unknown fixed effect {parameter!r}; expected 'Intercept' or 'time'")

    def require_fittable(self):
        """Raise ``InvalidParameterError`` unless a model can be fit to the data.

        Generation accepts ``residual_variance == 0``; fitting a mixed model
        does not.
        """
        _validate_variance(self.residual_variance, "residual_variance", strictly_positive=True).raise_if_invalid()

    def __repr__(self):
        return (
            f"SimulationParameters(n_clusters={self.n_clusters}, cluster_size={self.cluster_size}, "
            f"fixed_effects={self.fixed_effects.tolist()}, G={self.G.tolist()}, "
            f"residual_variance={self.residual_variance})"
        )
