# src/ecs_s3_copy/summary.py
"""
Run counters and the end-of-run report.

Copy tasks report their outcome into a single `RunCounters` instance shared
through the dispatcher. All tasks run on the same event loop and each record
method is a single increment without an await, so updates cannot interleave.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class RunCounters:
    """
    Monotonic operation counts of a run.

    Attributes:
        attempted (int): Copy tasks started, counted once per object.
        succeeded (int): Copy tasks that ended with a successful copy.
        failed (int): Copy tasks that exhausted their retry budget.
    """

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0

    def record_attempt(self) -> None:
        self.attempted += 1

    def record_success(self) -> None:
        self.succeeded += 1

    def record_failure(self) -> None:
        self.failed += 1

    @property
    def pending(self) -> int:
        """
        Tasks started but not yet resolved.

        Returns:
            int: Zero once every attempted copy reached its terminal outcome.
        """
        return self.attempted - self.succeeded - self.failed


@dataclass
class RunSummary:
    """
    Collects timing and outcome data for the final report.

    Attributes:
        counters (RunCounters): The counters shared with the copy tasks.
        latencies_s (List[float]): Duration of every copy task in seconds,
            from its first attempt to its terminal outcome.
    """

    counters: RunCounters = field(default_factory=RunCounters)
    latencies_s: List[float] = field(default_factory=list)
    _started_at: Optional[float] = field(default=None, init=False, repr=False)
    _finished_at: Optional[float] = field(default=None, init=False, repr=False)

    def start(self) -> None:
        """Captures the start timestamp of the run."""
        self._started_at = time.monotonic()
        self._finished_at = None

    def stop(self) -> None:
        """Freezes the elapsed time of the run."""
        self._finished_at = time.monotonic()

    def record_latency(self, duration_s: float) -> None:
        self.latencies_s.append(duration_s)

    @property
    def elapsed_s(self) -> float:
        """
        Seconds since `start`, up to `stop` if the run is over.

        Returns:
            float: The elapsed wall-clock time, 0.0 if the run never started.
        """
        if self._started_at is None:
            return 0.0
        end: float = (
            self._finished_at if self._finished_at is not None else time.monotonic()
        )
        return end - self._started_at

    @property
    def ops_per_second(self) -> float:
        elapsed: float = self.elapsed_s
        if elapsed <= 0:
            return 0.0
        return self.counters.attempted / elapsed

    def log(self) -> None:
        """Emits the run report."""
        logger.info(
            f"{self.counters.attempted} operations executed in "
            f"{self.elapsed_s:f} seconds"
        )
        logger.info(f"{self.ops_per_second:f} operations per second")
        logger.info(f"{self.counters.succeeded} operations succeeded")
        logger.info(f"{self.counters.failed} operations failed")
        if self.counters.pending:
            logger.warning(
                f"{self.counters.pending} operations did not reach a final outcome"
            )

        if self.latencies_s:
            latencies: np.ndarray = np.asarray(self.latencies_s)
            median_ms: float = float(np.median(latencies)) * 1000
            p90_ms: float = float(np.percentile(latencies, 90)) * 1000
            logger.info(
                f"Copy latency: median={median_ms:.0f}ms, p90={p90_ms:.0f}ms"
            )
