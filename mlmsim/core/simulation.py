"""
Replication loop for MLMSim.

Runs the generate -> fit cycle ``n_replications`` times and collects one
:class:`~mlmsim.stats.mixed_models.ReplicationRecord` per cycle into a
DataFrame, in generation order.
"""

import warnings
from typing import Callable, List, Optional, Union

import numpy as np
import pandas as pd

from ..errors import FitDivergedError, ReplicationFailureWarning
from ..progress import SimulationCancelled
from ..stats.data_generation import generate_growth_data
from ..stats.mixed_models import ReplicationRecord, fit_growth_model
from ..stats.random_effects import make_rng, spawn_generators
from ..utils.validators import (
    _validate_failure_policy,
    _validate_parallel_settings,
    _validate_replications,
    _validate_seed,
)

RECORD_COLUMNS = list(ReplicationRecord._fields)


def _single_replication(
    params,
    rng: np.random.Generator,
    generate_func: Callable,
    fit_func: Callable,
    parameter: str,
    random_slopes: bool,
) -> ReplicationRecord:
    """Generate one dataset, fit it, and extract the record for *parameter*."""
    data = generate_func(params, rng)
    fit = fit_func(data, random_slopes=random_slopes)
    return fit.record(parameter)


def _guarded_replication(*args) -> Union[ReplicationRecord, FitDivergedError]:
    # Worker-side wrapper: hand fit failures back to the parent as values
    try:
        return _single_replication(*args)
    except FitDivergedError as e:
        return e


class ReplicationRunner:
    """Executes Monte Carlo replications of a growth-model study.

    Sequential runs thread a single generator, seeded once, through every
    cycle. Parallel runs give each replication its own sub-stream spawned
    from the seed, so the result does not depend on worker scheduling.
    """

    def __init__(
        self,
        n_replications: int,
        seed: Optional[int] = None,
        parallel: bool = False,
        n_cores: Optional[int] = None,
        failure_policy: str = "raise",
    ):
        """Initialise the runner.

        Args:
            n_replications: Number of generate -> fit cycles (>= 2).
            seed: Seed for the random source; ``None`` for fresh entropy.
            parallel: Run replications with joblib.
            n_cores: Worker count for parallel runs (defaults to half the CPUs).
            failure_policy: ``"raise"`` aborts the run on the first failed
                fit; ``"exclude"`` drops failed replications with a warning.

        Raises:
            InvalidParameterError: If any setting is invalid.
        """
        result = _validate_replications(n_replications)
        result.raise_if_invalid()
        for msg in result.warnings:
            warnings.warn(msg, stacklevel=2)
        _validate_seed(seed).raise_if_invalid()
        _validate_failure_policy(failure_policy).raise_if_invalid()
        (self.parallel, self.n_cores), parallel_result = _validate_parallel_settings(parallel, n_cores)
        parallel_result.raise_if_invalid()

        self.n_replications = n_replications
        self.seed = seed
        self.failure_policy = failure_policy

    def run(
        self,
        params,
        generate_func: Callable = generate_growth_data,
        fit_func: Callable = fit_growth_model,
        parameter: str = "time",
        random_slopes: bool = False,
        progress=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> pd.DataFrame:
        """Run all replications.

        Args:
            params: :class:`~mlmsim.core.parameters.SimulationParameters`.
            generate_func: ``(params, rng) -> DataFrame`` dataset generator.
            fit_func: ``(data, random_slopes=...) -> fit`` where the fit
                provides ``record(parameter)``.
            parameter: Fixed effect to collect (``"time"`` is the slope).
            random_slopes: Passed through to *fit_func*.
            progress: Optional ``ProgressReporter`` told about every
                finished replication and whether its fit failed.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            DataFrame with columns ``estimate``, ``se``, ``lower``, ``upper``
            indexed by ``replication``. ``attrs`` holds ``parameter``,
            ``n_failed`` and ``seed``.

        Raises:
            InvalidParameterError: If *params* cannot be fit (zero noise).
            FitDivergedError: On a failed fit under the ``"raise"`` policy,
                or when every replication failed.
            SimulationCancelled: If *cancel_check* requests it.
        """
        params.require_fittable()

        if progress is not None:
            progress.start()

        if self.parallel:
            outcomes = self._run_parallel(params, generate_func, fit_func, parameter, random_slopes, progress, cancel_check)
        else:
            outcomes = self._run_sequential(params, generate_func, fit_func, parameter, random_slopes, progress, cancel_check)

        if progress is not None:
            progress.finish()

        return self._collect(outcomes, parameter)

    def _check_cancel(self, cancel_check, completed: int):
        if cancel_check is not None and cancel_check():
            raise SimulationCancelled(
                f"Replication run cancelled after {completed} of {self.n_replications} replications",
                completed=completed,
            )

    def _handle_failure(self, rep_id: int, error: FitDivergedError) -> FitDivergedError:
        if self.failure_policy == "raise":
            raise type(error)(f"Replication {rep_id} failed: {error}") from error
        return error

    def _run_sequential(self, params, generate_func, fit_func, parameter, random_slopes, progress, cancel_check) -> List:
        rng = make_rng(self.seed)
        outcomes: List = []

        for rep_id in range(self.n_replications):
            self._check_cancel(cancel_check, rep_id)
            try:
                outcome = _single_replication(params, rng, generate_func, fit_func, parameter, random_slopes)
            except FitDivergedError as e:
                outcome = self._handle_failure(rep_id, e)
            outcomes.append(outcome)

            if progress is not None:
                progress.replication_done(failed=isinstance(outcome, FitDivergedError))

        return outcomes

    def _run_parallel(self, params, generate_func, fit_func, parameter, random_slopes, progress, cancel_check) -> List:
        try:
            from joblib import Parallel, delayed
        except ImportError:
            warnings.warn(
                "joblib not available (pip install MLMSim[parallel]); continuing with sequential processing.",
                stacklevel=3,
            )
            return self._run_sequential(params, generate_func, fit_func, parameter, random_slopes, progress, cancel_check)

        generators = spawn_generators(self.seed, self.n_replications)
        results = Parallel(n_jobs=self.n_cores, backend="loky", verbose=0, return_as="generator")(
            delayed(_guarded_replication)(params, rng, generate_func, fit_func, parameter, random_slopes) for rng in generators
        )

        outcomes: List = []
        try:
            for rep_id, outcome in enumerate(results):
                self._check_cancel(cancel_check, rep_id)
                failed = isinstance(outcome, FitDivergedError)
                if failed:
                    outcome = self._handle_failure(rep_id, outcome)
                outcomes.append(outcome)
                if progress is not None:
                    progress.replication_done(failed=failed)
        finally:
            # stops dispatching and aborts pending workers on early exit
            results.close()

        return outcomes

    def _collect(self, outcomes: List, parameter: str) -> pd.DataFrame:
        records = [(rep_id, o) for rep_id, o in enumerate(outcomes) if isinstance(o, ReplicationRecord)]
        n_failed = len(outcomes) - len(records)

        if not records:
            raise FitDivergedError(f"All {len(outcomes)} replications failed to fit")

        if n_failed > 0:
            failed_pct = n_failed / len(outcomes)
            warnings.warn(
                f"{n_failed} replications failed to fit ({failed_pct:.1%}) and were excluded; "
                f"summaries use the remaining {len(records)}.",
                ReplicationFailureWarning,
                stacklevel=3,
            )

        table = pd.DataFrame(
            [r for _, r in records],
            columns=RECORD_COLUMNS,
            index=pd.Index([rep_id for rep_id, _ in records], name="replication"),
        )
        table.attrs["parameter"] = parameter
        table.attrs["n_failed"] = n_failed
        table.attrs["seed"] = self.seed
        return table
