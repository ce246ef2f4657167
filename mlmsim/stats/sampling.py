"""Sampling distributions of simple estimators.

Draws repeated samples from a known population to compare the sampling
variability of the mean and the median, and to show the central limit
theorem at work on skewed populations.
"""

from typing import Callable, Dict, Union

import numpy as np

from ..errors import DivisionByZeroError, InvalidParameterError
from ..utils.validators import _validate_count
from .random_effects import SeedLike, make_rng

_STATISTICS = {
    "mean": lambda samples: np.mean(samples, axis=1),
    "median": lambda samples: np.median(samples, axis=1),
}

# population name -> (sampler, default parameters)
_POPULATIONS = {
    "normal": (lambda rng, size, loc, scale: rng.normal(loc, scale, size), {"loc": 0.0, "scale": 1.0}),
    "uniform": (lambda rng, size, low, high: rng.uniform(low, high, size), {"low": 0.0, "high": 1.0}),
    "exponential": (lambda rng, size, scale: rng.exponential(scale, size), {"scale": 1.0}),
    "lognormal": (lambda rng, size, mean, sigma: rng.lognormal(mean, sigma, size), {"mean": 0.0, "sigma": 1.0}),
}


def _resolve_statistic(statistic: Union[str, Callable]) -> Callable:
    if callable(statistic):
        return statistic
    try:
        return _STATISTICS[statistic]
    except KeyError:
        raise InvalidParameterError(f"Unknown statistic {statistic!r}; use one of {sorted(_STATISTICS)} or a callable") from None


def simulate_sampling_distribution(
    statistic: Union[str, Callable],
    sample_size: int,
    n_samples: int,
    rng: SeedLike = None,
    population: str = "normal",
    **population_params,
) -> np.ndarray:
    """Draw ``n_samples`` samples of ``sample_size`` and apply *statistic* to each.

    Args:
        statistic: ``"mean"``, ``"median"`` or a callable reducing a
            ``(n_samples, sample_size)`` array along axis 1.
        sample_size: Observations per sample.
        n_samples: Number of samples.
        rng: Generator, seed or ``None``.
        population: ``"normal"``, ``"uniform"``, ``"exponential"`` or
            ``"lognormal"``.
        **population_params: Overrides for the population's defaults
            (e.g. ``loc``/``scale`` for the normal).

    Returns:
        ``(n_samples,)`` array of statistic values.
    """
    _validate_count(sample_size, "sample_size").raise_if_invalid()
    _validate_count(n_samples, "n_samples").raise_if_invalid()
    func = _resolve_statistic(statistic)

    if population not in _POPULATIONS:
        raise InvalidParameterError(f"Unknown population {population!r}; use one of {sorted(_POPULATIONS)}")
    sampler, defaults = _POPULATIONS[population]
    unknown = set(population_params) - set(defaults)
    if unknown:
        raise InvalidParameterError(f"Unknown parameters for {population} population: {sorted(unknown)}")

    rng = make_rng(rng)
    samples = sampler(rng, (n_samples, sample_size), **{**defaults, **population_params})
    return np.asarray(func(samples), dtype=float)


def relative_efficiency(estimates_a: np.ndarray, estimates_b: np.ndarray) -> float:
    """Efficiency of estimator A relative to B: ``var(B) / var(A)``.

    Values above 1 mean A is the more precise estimator.

    Raises:
        InvalidParameterError: With fewer than two values per estimator.
        DivisionByZeroError: If A has zero sampling variance.
    """
    a = np.asarray(estimates_a, dtype=float)
    b = np.asarray(estimates_b, dtype=float)
    if a.size < 2 or b.size < 2:
        raise InvalidParameterError("Need at least two estimates per estimator")

    var_a = float(np.var(a, ddof=1))
    if var_a == 0:
        raise DivisionByZeroError("Relative efficiency is undefined: first estimator has zero variance")
    return float(np.var(b, ddof=1)) / var_a


def compare_mean_median(
    sample_size: int,
    n_samples: int,
    rng: SeedLike = None,
    population: str = "normal",
    **population_params,
) -> Dict[str, object]:
    """Compare the sampling distributions of the mean and median.

    Both statistics are computed on the same samples.

    Returns:
        Dict with ``means``, ``medians``, their standard deviations
        (``sd_mean``, ``sd_median``) and ``efficiency``, the efficiency of
        the mean relative to the median (``var(median) / var(mean)``,
        about pi/2 for large normal samples).
    """
    statistics = {}

    def _both(samples):
        statistics["median"] = np.median(samples, axis=1)
        return np.mean(samples, axis=1)

    means = simulate_sampling_distribution(_both, sample_size, n_samples, rng, population, **population_params)
    medians = statistics["median"]

    return {
        "means": means,
        "medians": medians,
        "sd_mean": float(np.std(means, ddof=1)),
        "sd_median": float(np.std(medians, ddof=1)),
        "efficiency": relative_efficiency(means, medians),
    }
