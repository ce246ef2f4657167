"""
Shared pytest fixtures for MLMSim tests.
"""

import io
import sys

import numpy as np
import pytest

from tests.config import CLUSTER_SIZE, FIXED_EFFECTS, G_DIAG, N_CLUSTERS, RESIDUAL_VARIANCE, SEED


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: Monte Carlo scenario tests that fit many mixed models")


@pytest.fixture
def classroom_params():
    """Parameters of the classroom growth example."""
    from mlmsim import SimulationParameters

    return SimulationParameters(N_CLUSTERS, CLUSTER_SIZE, FIXED_EFFECTS, np.diag(G_DIAG), RESIDUAL_VARIANCE)


@pytest.fixture
def noiseless_params():
    """Zero random-effect covariance and zero residual variance."""
    from mlmsim import SimulationParameters

    return SimulationParameters(5, 3, (1.5, -0.25), np.zeros((2, 2)), 0.0)


@pytest.fixture
def rng():
    return np.random.default_rng(SEED)


@pytest.fixture
def suppress_output():
    """Swallow stdout/stderr produced by print_results / PrintReporter."""
    saved = sys.stdout, sys.stderr
    sys.stdout, sys.stderr = io.StringIO(), io.StringIO()
    try:
        yield
    finally:
        sys.stdout, sys.stderr = saved
