"""Core components for the MLMSim framework.

Re-exports the foundational building blocks:

- ``SimulationParameters``: immutable parameter set of one study.
- ``ReplicationRunner``: the generate -> fit replication loop.
- ``SummaryStatistics``, ``summarize_replications``: bias, coverage and
  MSE of a replication table.
"""

from .parameters import SimulationParameters
from .results import SummaryStatistics, summarize_replications
from .simulation import ReplicationRunner

__all__ = [
    "SimulationParameters",
    "ReplicationRunner",
    "SummaryStatistics",
    "summarize_replications",
]
