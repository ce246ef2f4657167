"""Random effects and residual sampling.

All draws come from an explicitly supplied ``numpy.random.Generator``;
nothing here touches the global NumPy random state. For a fixed seed the
full sequence of draws is identical as long as the calls happen in the
same order.
"""

from typing import Optional, Union

import numpy as np

from ..utils.validators import _validate_count, _validate_covariance_matrix, _validate_variance

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Return a Generator for *seed*; an existing Generator is passed through."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def _psd_factor(G: np.ndarray) -> np.ndarray:
    """Return ``A`` with ``A @ A.T == G`` for a symmetric PSD ``G``.

    The Cholesky factor when ``G`` is positive definite. Singular matrices
    (e.g. a zero slope variance) fall back to the eigen-decomposition, with
    tiny negative eigenvalues from rounding clipped to zero.
    """
    try:
        return np.linalg.cholesky(G)
    except np.linalg.LinAlgError:
        pass
    eigenvals, eigenvecs = np.linalg.eigh(G)
    return eigenvecs * np.sqrt(np.clip(eigenvals, 0.0, None))


def draw_random_effects(n_clusters: int, G: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Draw cluster-level random effects.

    Args:
        n_clusters: Number of clusters ``J``.
        G: ``(q, q)`` covariance matrix (``q == 2`` for intercept and slope).
        rng: Random source; advanced by ``J * q`` standard normal draws.

    Returns:
        ``(J, q)`` array, one independent ``N(0, G)`` row per cluster.

    Raises:
        InvalidParameterError: If ``n_clusters < 1`` or ``G`` is not a
            symmetric positive semi-definite matrix.
    """
    _validate_count(n_clusters, "n_clusters").raise_if_invalid()
    _validate_covariance_matrix(G, dim=None).raise_if_invalid()

    G_arr = np.asarray(G, dtype=float)
    z = rng.standard_normal(size=(n_clusters, G_arr.shape[0]))
    return z @ _psd_factor(G_arr).T


def draw_residuals(n_observations: int, residual_variance: float, rng: np.random.Generator) -> np.ndarray:
    """Draw ``n_observations`` independent ``N(0, residual_variance)`` residuals.

    Raises:
        InvalidParameterError: If ``n_observations < 1`` or the variance is
            negative or not finite.
    """
    _validate_count(n_observations, "n_observations").raise_if_invalid()
    _validate_variance(residual_variance, "residual_variance").raise_if_invalid()

    return rng.normal(0.0, np.sqrt(residual_variance), size=n_observations)


def spawn_generators(seed: Optional[int], n: int) -> list:
    """Create ``n`` independent, deterministically seeded generators.

    Used for parallel replication: generator ``k`` depends only on ``seed``
    and ``k``, so results do not depend on scheduling.
    """
    children = np.random.SeedSequence(seed).spawn(n)
    return [np.random.default_rng(child) for child in children]
