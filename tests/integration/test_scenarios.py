"""
End-to-end replication studies with real statsmodels fits.

The classroom scenario (20 individuals, 4 waves, slope 0.5) is checked
against loose bands; the bands are wide enough that any seed should pass.
"""

import numpy as np
import pytest

from mlmsim import GrowthSimulation, ReplicationRunner, summarize_replications
from mlmsim.errors import FitDivergedError, InvalidParameterError
from tests.config import COVERAGE_BAND, N_REPS_CHECK, N_REPS_STANDARD, SEED, SLOPE_BAND


@pytest.fixture(scope="module")
def result():
    """Random-intercept study on the classroom design, 100 replications."""
    sim = GrowthSimulation().set_seed(SEED).set_simulations(N_REPS_STANDARD).set_failure_policy("exclude")
    return sim.run(random_slopes=False)


@pytest.mark.slow
class TestClassroomScenario:
    """Random-intercept model on the classroom design, 100 replications."""

    def test_replications_accounted_for(self, result):
        assert len(result.table) + result.n_failed == N_REPS_STANDARD
        assert result.summary.n_replications == len(result.table)
        # boundary (singular) intercept-variance fits are rare with G = diag(0.25, 0.125)
        assert result.n_failed <= 5

    def test_mean_slope_near_truth(self, result):
        low, high = SLOPE_BAND
        assert low <= result.summary.mean_estimate <= high

    def test_coverage_band(self, result):
        low, high = COVERAGE_BAND
        assert low <= result.summary.coverage <= high

    def test_rmse_decomposition(self, result):
        s = result.summary
        assert s.rmse == pytest.approx(s.bias**2 + s.sd_estimate**2)

    def test_intervals_contain_estimates(self, result):
        t = result.table
        assert ((t["lower"] < t["estimate"]) & (t["estimate"] < t["upper"])).all()
        assert (t["se"] > 0).all()

    def test_reproducible(self, result):
        sim = GrowthSimulation().set_seed(SEED).set_simulations(N_REPS_STANDARD).set_failure_policy("exclude")
        again = sim.run(random_slopes=False)
        np.testing.assert_array_equal(result.table.to_numpy(), again.table.to_numpy())


@pytest.mark.filterwarnings("ignore:Low replication count")
class TestSmallRuns:
    def test_random_slopes_model(self):
        sim = GrowthSimulation(n_clusters=40, cluster_size=5).set_simulations(N_REPS_CHECK).set_failure_policy("exclude")
        result = sim.run(random_slopes=True)
        assert result.model_description == "random intercept and slope"
        assert result.summary.n_replications + result.n_failed == N_REPS_CHECK

    def test_intercept_summary(self):
        result = GrowthSimulation(fixed_effects=(1.0, 0.5)).set_simulations(N_REPS_CHECK).run(parameter="Intercept")
        assert result.summary.true_value == 1.0
        assert result.table.attrs["parameter"] == "Intercept"

    def test_print_results(self, suppress_output):
        GrowthSimulation().set_simulations(N_REPS_CHECK).run(print_results=True)

    def test_runner_and_summary_directly(self, classroom_params):
        table = ReplicationRunner(N_REPS_CHECK, seed=SEED).run(classroom_params)
        summary = summarize_replications(table, classroom_params.slope)
        assert summary.n_replications == N_REPS_CHECK
        assert 0.0 <= summary.coverage <= 1.0

    def test_zero_residual_variance_refused(self, noiseless_params):
        with pytest.raises(InvalidParameterError):
            ReplicationRunner(N_REPS_CHECK, seed=SEED).run(noiseless_params)

    def test_all_failures_raise(self, classroom_params):
        def _always_fail(data, random_slopes=False):
            raise FitDivergedError("boom")

        runner = ReplicationRunner(N_REPS_CHECK, seed=SEED, failure_policy="exclude")
        with pytest.raises(FitDivergedError, match="All 5 replications"):
            runner.run(classroom_params, fit_func=_always_fail)
