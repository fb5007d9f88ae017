"""Polling state machine that waits for a submitted job to finish."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..config import TransferSettings
from ..domain.models import Job
from ..domain.progress import progress_snapshot
from ..exceptions import InvalidArgumentError, ensure_identity
from ..store.base import RemoteMediaStore

logger = logging.getLogger(__name__)

JobChangeCallback = Callable[[Job], Any]


@dataclass(slots=True)
class JobMonitor:
    """Refresh a job at a fixed interval until it reaches a terminal state.

    ``on_change`` fires only when the refreshed snapshot differs from the
    previous one in state or overall task progress. Both the pause between
    polls and the refresh call itself stop as soon as ``cancel_event`` is
    set, surfacing :class:`asyncio.CancelledError` to the caller. Refresh
    failures propagate unchanged and end the loop.
    """

    store: RemoteMediaStore
    settings: TransferSettings
    sleep: Callable[[float], Any] | None = None
    log: logging.Logger = field(default_factory=lambda: logger)

    async def monitor(
        self,
        job: Job | None,
        *,
        refresh_interval_ms: int | None = None,
        on_change: JobChangeCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Job:
        job = ensure_identity(job)
        interval_ms = (
            self.settings.job_refresh_interval_ms
            if refresh_interval_ms is None
            else refresh_interval_ms
        )
        if interval_ms < 0:
            raise InvalidArgumentError("The refresh interval cannot be negative.")
        interval = interval_ms / 1000.0

        self.log.info(
            "jobs.monitor.started",
            extra={"job_id": job.id, "state": str(job.state), "interval_ms": interval_ms},
        )
        polls = 0
        while not job.is_terminal:
            await self._pause(interval, cancel_event)
            if cancel_event is not None and cancel_event.is_set():
                self.log.info("jobs.monitor.cancelled", extra={"job_id": job.id, "polls": polls})
                raise asyncio.CancelledError

            previous_state = job.state
            previous_progress = progress_snapshot(job)
            job = await self._refresh(job, cancel_event)
            polls += 1

            progress = progress_snapshot(job)
            if job.state != previous_state or progress != previous_progress:
                self.log.info(
                    "jobs.monitor.changed",
                    extra={
                        "job_id": job.id,
                        "state": str(job.state),
                        "previous_state": str(previous_state),
                        "progress": progress,
                    },
                )
                if on_change is not None:
                    await _maybe_await(on_change(job))

        self.log.info(
            "jobs.monitor.finished",
            extra={"job_id": job.id, "state": str(job.state), "polls": polls},
        )
        return job

    async def _pause(self, seconds: float, cancel_event: asyncio.Event | None) -> None:
        if self.sleep is not None:
            await _maybe_await(self.sleep(seconds))
            return
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _refresh(self, job: Job, cancel_event: asyncio.Event | None) -> Job:
        if cancel_event is None:
            return await self.store.refresh_job(job)

        refresh = asyncio.ensure_future(self.store.refresh_job(job))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({refresh, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not refresh.done():
                refresh.cancel()
                await asyncio.gather(refresh, return_exceptions=True)

        if refresh.cancelled():
            self.log.info("jobs.monitor.refresh_cancelled", extra={"job_id": job.id})
            raise asyncio.CancelledError
        return refresh.result()


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


__all__ = ["JobChangeCallback", "JobMonitor"]
