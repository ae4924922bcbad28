"""Periodic background jobs on asyncio.

Each :class:`CronJob` runs in its own task: sleep ``period`` seconds, run
the handler, repeat. A failing run is logged and the loop carries on. Jobs
flagged ``run_at_start`` run once immediately, which lets charge expiry
catch up after downtime.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from lzar_wallet.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    """A recurring background job."""

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""
    run_at_start: bool = False


class TaskManager:
    """Schedules and supervises the wallet's cron jobs.

    Usage::

        tm = TaskManager(metrics=engine_metrics)
        tm.register("expire_charges", CronJob(handler=..., period=60))
        await tm.start()
        ...
        await tm.stop()
    """

    def __init__(self, *, metrics: EngineMetrics | None = None) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._last_run: dict[str, float] = {}
        self._running = False
        self._metrics = metrics

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs (name -> CronJob)."""
        return dict(self._jobs)

    def last_run(self, name: str) -> float | None:
        """Unix time the job last finished, or None if it never ran."""
        return self._last_run.get(name)

    def register(self, name: str, job: CronJob) -> None:
        """Register *job* under *name*; starts it at once if already running."""
        if job.period <= 0:
            msg = f"Cron job {name!r} needs a positive period"
            raise ValueError(msg)
        named = CronJob(
            handler=job.handler, period=job.period, name=name, run_at_start=job.run_at_start
        )
        self._jobs[name] = named
        if self._running:
            self._spawn(named)

    async def run_now(self, name: str) -> None:
        """Run a registered job once, outside its schedule.

        Raises:
            KeyError: If no job is registered under *name*.
        """
        await self._execute(self._jobs[name])

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for job in self._jobs.values():
            self._spawn(job)
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Cancel all job loops and wait for them to finish."""
        if not self._running:
            return
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for name, result in zip(self._tasks, results, strict=True):
            if isinstance(result, Exception):
                logger.error("Cron job %r errored during shutdown: %s", name, result)
        self._tasks.clear()
        logger.info("TaskManager stopped")

    def _spawn(self, job: CronJob) -> None:
        self._tasks[job.name] = asyncio.create_task(
            self._run_loop(job), name=f"cron:{job.name}"
        )

    async def _execute(self, job: CronJob) -> None:
        if self._metrics:
            with self._metrics.track_cron(job.name):
                await job.handler()
        else:
            await job.handler()
        self._last_run[job.name] = time.time()

    async def _run_once_logged(self, job: CronJob) -> None:
        try:
            await self._execute(job)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Cron job %r failed", job.name)

    async def _run_loop(self, job: CronJob) -> None:
        if job.run_at_start:
            await self._run_once_logged(job)
        while self._running:
            await asyncio.sleep(job.period)
            if not self._running:
                break
            await self._run_once_logged(job)
