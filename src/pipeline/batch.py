"""PortfolioBatchRunner: run full analytics for many portfolios in parallel."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from src.config import default_simulation_seed, section
from src.data_sources.fund_master import FundSnapshot
from src.analysis.engine import PortfolioAnalyticsEngine
from src.utils.logger import setup_logger

logger = setup_logger("batch")

ProgressCallback = Callable[[str, str, float], None]

MAX_WORKERS: int = int(section("batch").get("max_workers", 4))


@dataclass(frozen=True)
class PortfolioJob:
    """One portfolio to analyse."""

    name: str
    funds: Sequence[FundSnapshot]
    weights: Mapping[str, float]
    amount: float | None = None
    years: int | None = None
    method: str = "history"


@dataclass
class BatchResult:
    reports: dict[str, dict[str, Any]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    timing: dict[str, float] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return sorted(self.reports)

    @property
    def failed(self) -> list[str]:
        return sorted(self.errors)


class PortfolioBatchRunner:
    """Analyses independent portfolios concurrently on a thread pool.

    Each job gets its own seed spawned from one ``SeedSequence``, so a batch
    run with a fixed seed is reproducible regardless of scheduling order.
    A failing job is recorded in ``BatchResult.errors`` and does not stop
    the others.

    Attributes:
        max_workers: Maximum number of threads in the executor pool.
        progress_callback: Optional callable invoked after each job with
            (job_name, status, elapsed_seconds).
    """

    def __init__(
        self,
        max_workers: int = MAX_WORKERS,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self.progress_callback = progress_callback

    @staticmethod
    def _spawn_seeds(n: int, seed: int | None) -> list[int]:
        root = np.random.SeedSequence(seed)
        return [int(child.generate_state(1)[0]) for child in root.spawn(n)]

    def _run_job(self, job: PortfolioJob, seed: int) -> dict[str, Any]:
        engine = PortfolioAnalyticsEngine(job.funds, job.weights)
        return engine.full_report(
            amount=job.amount, years=job.years, seed=seed, method=job.method,
        )

    def _notify(self, name: str, status: str, elapsed: float) -> None:
        if self.progress_callback is not None:
            self.progress_callback(name, status, elapsed)

    def run(self, jobs: Sequence[PortfolioJob], seed: int | None = None) -> BatchResult:
        """Run *jobs* in parallel.

        Raises:
            ValueError: if two jobs share a name.
        """
        names = [job.name for job in jobs]
        if len(set(names)) != len(names):
            raise ValueError("Portfolio job names must be unique")

        seed = seed if seed is not None else default_simulation_seed()
        seeds = self._spawn_seeds(len(jobs), seed)
        result = BatchResult()
        logger.info("Batch started: %d portfolios, %d workers", len(jobs), self.max_workers)
        batch_start = time.monotonic()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_job = {
                executor.submit(self._timed, job, job_seed): job
                for job, job_seed in zip(jobs, seeds)
            }
            for future in as_completed(future_to_job):
                job = future_to_job[future]
                report, error, elapsed = future.result()
                result.timing[job.name] = round(elapsed, 2)
                if error is None:
                    result.reports[job.name] = report
                    self._notify(job.name, "completed", elapsed)
                else:
                    result.errors[job.name] = error
                    self._notify(job.name, "failed", elapsed)

        result.timing["total"] = round(time.monotonic() - batch_start, 2)
        logger.info(
            "Batch completed in %.1fs: %d ok, %d failed",
            result.timing["total"], len(result.reports), len(result.errors),
        )
        return result

    def _timed(self, job: PortfolioJob, seed: int) -> tuple[dict | None, str | None, float]:
        start = time.monotonic()
        try:
            report = self._run_job(job, seed)
        except Exception as exc:
            elapsed = time.monotonic() - start
            logger.error("Portfolio %s failed in %.1fs: %s", job.name, elapsed, exc)
            return None, str(exc), elapsed
        elapsed = time.monotonic() - start
        logger.info("Portfolio %s completed in %.1fs", job.name, elapsed)
        return report, None, elapsed
