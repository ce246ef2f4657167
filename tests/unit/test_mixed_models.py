"""Unit tests for mlmsim.stats.mixed_models (statsmodels MixedLM wrapper)."""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from mlmsim.errors import FitDivergedError, InvalidParameterError, SingularFitError
from mlmsim.stats.data_generation import generate_growth_data
from mlmsim.stats.mixed_models import GrowthModelFit, ReplicationRecord, fit_growth_model


@pytest.fixture
def large_dataset():
    from mlmsim import SimulationParameters

    params = SimulationParameters(200, 5, (1.0, 0.5), np.diag([0.5, 0.1]), 1.0)
    return generate_growth_data(params, np.random.default_rng(17))


@pytest.fixture
def handmade_fit():
    names = ["Intercept", "time"]
    return GrowthModelFit(
        params=pd.Series([0.1, 0.48], index=names),
        cov_params=pd.DataFrame([[0.04, -0.01], [-0.01, 0.01]], index=names, columns=names),
        random_slopes=False,
        cov_re=pd.DataFrame([[0.25]]),
        scale=1.0,
    )


class TestGrowthModelFit:
    def test_se_is_sqrt_of_diagonal(self, handmade_fit):
        assert handmade_fit.se("Intercept") == pytest.approx(0.2)
        assert handmade_fit.se("time") == pytest.approx(0.1)

    def test_conf_int_default_95(self, handmade_fit):
        lower, upper = handmade_fit.conf_int("time")
        z = stats.norm.ppf(0.975)
        assert lower == pytest.approx(0.48 - z * 0.1)
        assert upper == pytest.approx(0.48 + z * 0.1)

    def test_conf_int_level(self, handmade_fit):
        narrow = handmade_fit.conf_int("time", level=0.5)
        wide = handmade_fit.conf_int("time", level=0.99)
        assert wide[0] < narrow[0] < narrow[1] < wide[1]

    def test_conf_int_invalid_level(self, handmade_fit):
        with pytest.raises(InvalidParameterError):
            handmade_fit.conf_int("time", level=1.5)

    def test_record(self, handmade_fit):
        record = handmade_fit.record("time")
        assert isinstance(record, ReplicationRecord)
        assert record.estimate == pytest.approx(0.48)
        assert record.se == pytest.approx(0.1)
        assert (record.lower, record.upper) == pytest.approx(handmade_fit.conf_int("time"))

    def test_unknown_name(self, handmade_fit):
        with pytest.raises(KeyError):
            handmade_fit.se("age")
        with pytest.raises(KeyError):
            handmade_fit.record("age")


class TestFitGrowthModel:
    def test_random_intercept_recovers_fixed_effects(self, large_dataset):
        fit = fit_growth_model(large_dataset, random_slopes=False)
        assert list(fit.params.index) == ["Intercept", "time"]
        assert fit.params["Intercept"] == pytest.approx(1.0, abs=0.2)
        assert fit.params["time"] == pytest.approx(0.5, abs=0.1)
        assert fit.random_slopes is False
        assert fit.cov_re.shape == (1, 1)

    def test_random_slopes_model(self, large_dataset):
        fit = fit_growth_model(large_dataset, random_slopes=True)
        assert fit.random_slopes is True
        assert fit.cov_re.shape == (2, 2)
        assert fit.params["time"] == pytest.approx(0.5, abs=0.1)
        assert fit.scale == pytest.approx(1.0, rel=0.25)

    def test_cov_params_fixed_effects_only(self, large_dataset):
        fit = fit_growth_model(large_dataset)
        assert list(fit.cov_params.index) == ["Intercept", "time"]
        assert list(fit.cov_params.columns) == ["Intercept", "time"]
        assert np.all(np.diag(fit.cov_params.values) > 0)

    def test_ci_contains_estimate(self, large_dataset):
        fit = fit_growth_model(large_dataset)
        lower, upper = fit.conf_int("time")
        assert lower < fit.params["time"] < upper

    def test_does_not_mutate_data(self, large_dataset):
        before = large_dataset.copy()
        fit_growth_model(large_dataset)
        pd.testing.assert_frame_equal(large_dataset, before)

    def test_missing_columns(self, large_dataset):
        with pytest.raises(InvalidParameterError, match="missing columns"):
            fit_growth_model(large_dataset.drop(columns="id"))

    def test_single_cluster(self, large_dataset):
        with pytest.raises(InvalidParameterError):
            fit_growth_model(large_dataset[large_dataset["id"] == 1])


class _NotConverged:
    converged = False


class TestFitFailures:
    def test_not_converged_raises_diverged(self, large_dataset):
        with patch(
            "statsmodels.regression.mixed_linear_model.MixedLM.fit",
            return_value=_NotConverged(),
        ) as mock_fit:
            with pytest.raises(FitDivergedError, match="did not converge"):
                fit_growth_model(large_dataset)
        # every attempt of the retry ladder was tried
        assert mock_fit.call_count == 2

    def test_linalg_error_raises_singular(self, large_dataset):
        with patch(
            "statsmodels.regression.mixed_linear_model.MixedLM.fit",
            side_effect=np.linalg.LinAlgError("Singular matrix"),
        ):
            with pytest.raises(SingularFitError):
                fit_growth_model(large_dataset)

    def test_singular_is_diverged_subclass(self):
        assert issubclass(SingularFitError, FitDivergedError)


class _BoundaryFit:
    """Converged result whose random-effects covariance sits on the boundary."""

    converged = True
    scale = 1.0

    def __init__(self, cov_re):
        names = ["Intercept", "time"]
        self.fe_params = pd.Series([0.0, 0.5], index=names)
        self._cov = pd.DataFrame([[0.04, -0.01], [-0.01, 0.01]], index=names, columns=names)
        self.cov_re = pd.DataFrame(cov_re)

    def cov_params(self):
        return self._cov


class TestSingularRandomEffects:
    @pytest.mark.parametrize(
        "cov_re",
        [
            [[0.0]],
            [[0.25, 0.0], [0.0, 0.0]],
            [[0.25, 0.125], [0.125, 0.0625]],
            [[np.nan, 0.0], [0.0, 0.1]],
        ],
        ids=["zero-intercept", "zero-slope", "perfect-correlation", "non-finite"],
    )
    def test_boundary_estimate_raises_singular(self, large_dataset, cov_re):
        with patch(
            "statsmodels.regression.mixed_linear_model.MixedLM.fit",
            return_value=_BoundaryFit(cov_re),
        ):
            with pytest.raises(SingularFitError, match="Random-effects covariance"):
                fit_growth_model(large_dataset, random_slopes=len(cov_re) == 2)

    def test_positive_definite_estimate_accepted(self, large_dataset):
        with patch(
            "statsmodels.regression.mixed_linear_model.MixedLM.fit",
            return_value=_BoundaryFit([[0.25, 0.01], [0.01, 0.125]]),
        ):
            fit = fit_growth_model(large_dataset, random_slopes=True)
        assert fit.cov_re.shape == (2, 2)

    def test_zero_slope_variance_data(self):
        """Random-slope fits of data without slope variance hit the boundary."""
        from mlmsim import SimulationParameters

        params = SimulationParameters(20, 4, (0.0, 0.5), np.diag([0.25, 0.0]), 1.0)
        rng = np.random.default_rng(2208)

        n_singular = 0
        for _ in range(30):
            data = generate_growth_data(params, rng)
            try:
                fit = fit_growth_model(data, random_slopes=True)
            except SingularFitError:
                n_singular += 1
            except FitDivergedError:
                continue
            else:
                assert np.linalg.eigvalsh(fit.cov_re.to_numpy())[0] > 0
        assert n_singular > 0
