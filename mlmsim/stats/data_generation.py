"""
Data generation for two-level linear growth models.

Every cluster (individual) is measured at the same ``cs`` equally spaced
time points ``0, 1, ..., cs - 1``. The outcome for row ``i`` in cluster
``j`` is::

    y_i = X_i . (gamma + u_j) + e_i,    u_j ~ N(0, G),  e_i ~ N(0, sigma^2)
"""

from typing import Tuple

import numpy as np
import pandas as pd

from ..errors import InvalidParameterError
from ..utils.validators import _validate_count
from .random_effects import SeedLike, draw_random_effects, draw_residuals, make_rng

DATASET_COLUMNS = ["y", "time", "id"]


def build_design_matrix(n_clusters: int, cluster_size: int) -> Tuple[np.ndarray, np.ndarray]:
    """Build the fixed-effects design matrix and cluster index of a balanced panel.

    Args:
        n_clusters: Number of clusters ``J`` (>= 1).
        cluster_size: Time points per cluster ``cs`` (>= 1).

    Returns:
        ``(X, cluster_ids)`` where ``X`` is ``(J*cs, 2)`` with an all-ones
        column and a time column cycling ``0..cs-1``, and ``cluster_ids``
        holds ids ``1..J``, each in a contiguous block of ``cs`` rows.

    Raises:
        InvalidParameterError: If either argument is not an integer >= 1.
    """
    _validate_count(n_clusters, "n_clusters").raise_if_invalid()
    _validate_count(cluster_size, "cluster_size").raise_if_invalid()

    time = np.tile(np.arange(cluster_size, dtype=float), n_clusters)
    X = np.column_stack([np.ones(n_clusters * cluster_size), time])
    cluster_ids = np.repeat(np.arange(1, n_clusters + 1, dtype=np.int64), cluster_size)
    return X, cluster_ids


def cluster_coefficients(fixed_effects: np.ndarray, random_effects: np.ndarray) -> np.ndarray:
    """Combine fixed and random effects into per-cluster coefficients.

    The fixed-effect vector is broadcast over the cluster rows and added
    elementwise: ``B[j] = gamma + u_j``.

    Args:
        fixed_effects: ``(q,)`` fixed effects.
        random_effects: ``(J, q)`` random effects.

    Returns:
        ``(J, q)`` coefficient matrix.

    Raises:
        InvalidParameterError: If the shapes are not ``(q,)`` and ``(J, q)``.
    """
    gamma = np.asarray(fixed_effects, dtype=float)
    U = np.asarray(random_effects, dtype=float)
    if gamma.ndim != 1 or U.ndim != 2 or U.shape[1] != gamma.shape[0]:
        raise InvalidParameterError(
            f"Cannot combine fixed effects of shape {gamma.shape} with random effects of shape {U.shape}"
        )
    return gamma[np.newaxis, :] + U


def generate_growth_data(params, rng: SeedLike = None) -> pd.DataFrame:
    """Generate one synthetic growth dataset.

    Draw order is fixed (random effects first, then residuals), which keeps
    the output reproducible for a seeded generator.

    Args:
        params: :class:`~mlmsim.core.parameters.SimulationParameters`.
        rng: Generator, seed, or ``None`` for fresh entropy.

    Returns:
        DataFrame with columns ``y``, ``time`` and ``id`` and ``J * cs`` rows.
    """
    rng = make_rng(rng)

    X, cluster_ids = build_design_matrix(params.n_clusters, params.cluster_size)
    U = draw_random_effects(params.n_clusters, params.G, rng)
    e = draw_residuals(params.n_observations, params.residual_variance, rng)

    B = cluster_coefficients(params.fixed_effects, U)
    # Row-wise dot product with the coefficients of each row's cluster
    y = np.einsum("ij,ij->i", X, B[cluster_ids - 1]) + e

    return pd.DataFrame({"y": y, "time": X[:, 1], "id": cluster_ids}, columns=DATASET_COLUMNS)
