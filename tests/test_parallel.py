"""
Tests for parallel replication with joblib.
"""

import numpy as np
import pytest

from mlmsim import ReplicationRunner
from mlmsim.core.simulation import _single_replication
from mlmsim.stats.data_generation import generate_growth_data
from mlmsim.stats.mixed_models import fit_growth_model
from mlmsim.stats.random_effects import spawn_generators
from tests.config import N_REPS_CHECK, SEED

pytest.importorskip("joblib")

pytestmark = pytest.mark.filterwarnings("ignore:Low replication count")


class TestParallelExecution:
    def test_parallel_runs_reproducible(self, classroom_params):
        """Two parallel runs with the same seed give identical tables."""
        a = ReplicationRunner(N_REPS_CHECK, seed=SEED, parallel=True, n_cores=2).run(classroom_params)
        b = ReplicationRunner(N_REPS_CHECK, seed=SEED, parallel=True, n_cores=2).run(classroom_params)
        np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())

    def test_parallel_uses_spawned_streams(self, classroom_params):
        """Replication k is the fit of the dataset drawn from sub-stream k."""
        table = ReplicationRunner(N_REPS_CHECK, seed=SEED, parallel=True, n_cores=2).run(classroom_params)
        expected = [
            _single_replication(classroom_params, rng, generate_growth_data, fit_growth_model, "time", False)
            for rng in spawn_generators(SEED, N_REPS_CHECK)
        ]
        np.testing.assert_allclose(table.to_numpy(), np.array(expected), rtol=1e-10)

    def test_parallel_table_shape(self, classroom_params):
        table = ReplicationRunner(N_REPS_CHECK, seed=SEED, parallel=True, n_cores=2).run(classroom_params)
        assert list(table.index) == list(range(N_REPS_CHECK))
        assert table.attrs["n_failed"] == 0

    def test_facade_parallel(self):
        from mlmsim import GrowthSimulation

        result = GrowthSimulation().set_simulations(N_REPS_CHECK).set_parallel(True, n_cores=2).run()
        assert len(result.table) == N_REPS_CHECK
