"""MLMSim - multilevel growth-model simulation.

Generates balanced two-level linear growth data from a known model, fits a
mixed-effects model to every replication, and summarizes bias, standard
error bias, coverage and mean squared error against the truth.

Example:
    >>> from mlmsim import GrowthSimulation
    >>>
    >>> sim = GrowthSimulation(n_clusters=20, cluster_size=4).set_seed(2208)
    >>> result = sim.run(random_slopes=False)
    >>> print(result)
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

from .core import ReplicationRunner, SimulationParameters, SummaryStatistics, summarize_replications
from .errors import DivisionByZeroError, FitDivergedError, InvalidParameterError, SingularFitError
from .model import GrowthSimulation, StudyResult
from .progress import PrintReporter, ProgressReporter, SimulationCancelled, TqdmReporter
from .stats.data_generation import build_design_matrix, generate_growth_data
from .stats.mixed_models import GrowthModelFit, fit_growth_model

try:
    __version__ = _get_version("MLMSim")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "GrowthSimulation",
    "StudyResult",
    "SimulationParameters",
    "ReplicationRunner",
    "SummaryStatistics",
    "summarize_replications",
    "build_design_matrix",
    "generate_growth_data",
    "fit_growth_model",
    "GrowthModelFit",
    "InvalidParameterError",
    "FitDivergedError",
    "SingularFitError",
    "DivisionByZeroError",
    "SimulationCancelled",
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
