"""
Progress reporting for MLMSim replication runs.

The runner tells a :class:`ProgressReporter` about every finished
replication and whether its fit failed. The reporter forwards
``(done, total, n_failed)`` to a user callback, such as
:class:`PrintReporter` or :class:`TqdmReporter`.
"""

import sys
from typing import Callable, Optional

from .errors import MLMSimError

ProgressCallback = Callable[[int, int, int], None]


class SimulationCancelled(MLMSimError):
    """Raised when ``cancel_check`` stops a replication run.

    Attributes:
        completed: Replications finished before the run stopped.
    """

    def __init__(self, message: str, completed: int = 0):
        super().__init__(message)
        self.completed = completed


class ProgressReporter:
    """Counts finished and failed replications for a progress callback.

    The callback receives ``(done, total, n_failed)``. Ordinary updates are
    throttled to one per *step* replications; the opening ``0``, the final
    count and every excluded failure are always reported.

    Args:
        total: Number of replications in the run.
        callback: Progress callback.
        step: Replications between ordinary updates; defaults to about one
            per percent of the run.
    """

    def __init__(self, total: int, callback: ProgressCallback, step: Optional[int] = None):
        self.total = total
        self.step = step if step is not None else max(1, total // 100)
        self.done = 0
        self.n_failed = 0
        self._callback = callback
        self._reported = None

    def _report(self):
        self._reported = self.done
        self._callback(self.done, self.total, self.n_failed)

    def start(self):
        self.done = 0
        self.n_failed = 0
        self._report()

    def replication_done(self, failed: bool = False):
        """Record one finished replication; *failed* marks an excluded fit."""
        self.done += 1
        if failed:
            self.n_failed += 1
        if failed or self.done >= self.total or self.done - self._reported >= self.step:
            self._report()

    def finish(self):
        if self._reported != self.done:
            self._report()


class PrintReporter:
    """Writes ``\\rReplications: 45/100 (45.0%), 2 failed`` to stderr."""

    def __call__(self, done: int, total: int, n_failed: int = 0):
        if total <= 0:
            return
        line = f"\rReplications: {done}/{total} ({100.0 * done / total:5.1f}%)"
        if n_failed:
            line += f", {n_failed} failed"
        sys.stderr.write(line)
        if done >= total:
            sys.stderr.write("\n")
        sys.stderr.flush()


class TqdmReporter:
    """tqdm progress bar with the failure count as a postfix.

    Usage::

        from mlmsim.progress import TqdmReporter
        sim.run(progress_callback=TqdmReporter(desc="slopes"))
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None
        self._shown_failed = 0

    def __call__(self, done: int, total: int, n_failed: int = 0):
        if self._bar is None:
            try:
                from tqdm import tqdm
            except ImportError:
                raise ImportError("tqdm required for TqdmReporter: pip install MLMSim[progress]") from None
            self._bar = tqdm(total=total, unit="rep", **self._tqdm_kwargs)
            self._shown_failed = 0

        if n_failed != self._shown_failed:
            self._bar.set_postfix(failed=n_failed)
            self._shown_failed = n_failed
        if done > self._bar.n:
            self._bar.update(done - self._bar.n)

        if done >= total:
            self._bar.close()
            self._bar = None
