"""
Concurrent polling of asynchronous vision jobs.

Each job is polled on its own task with a fixed interval and a bounded number
of attempts. Jobs are joined with all-settled semantics so that a slow, failing
or timed-out job never affects its siblings.
"""

from __future__ import annotations

import asyncio
import typing as t
from dataclasses import dataclass

import structlog

from visionbatch.client import VisionClient
from visionbatch.fields import DescriptionField
from visionbatch.progress import ProgressTracker
from visionbatch.responses import PollFailed, Resolved, StillPending
from visionbatch.results import ErrorKind

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PollJob:
    """A submission that must be polled for its results."""

    field: DescriptionField
    chunk_index: int
    job_handle: str


@dataclass(frozen=True)
class TimedOut:
    message: str
    attempts: int
    kind: ErrorKind = ErrorKind.timeout


PollOutcome = t.Union[Resolved, PollFailed, TimedOut]

TIMEOUT_MESSAGE = "Timed out waiting for results. Please try again."


class PollCoordinator:
    """
    Drive every pending job of a run to a terminal outcome.

    Parameters
    ----------
    client : VisionClient
        Client used to query job handles.
    tracker : ProgressTracker
        Run progress tracker, updated when a job resolves.
    poll_interval_seconds : float
        Delay between two attempts on the same job.
    max_poll_attempts : int
        Attempts allowed per job before it times out.
    """

    def __init__(
        self,
        *,
        client: VisionClient,
        tracker: ProgressTracker,
        poll_interval_seconds: float,
        max_poll_attempts: int,
    ) -> None:
        self._client = client
        self._tracker = tracker
        self._poll_interval_seconds = poll_interval_seconds
        self._max_poll_attempts = max_poll_attempts

    async def poll_job(self, *, job: PollJob) -> PollOutcome:
        """
        Poll one job until it resolves, fails or runs out of attempts.

        Parameters
        ----------
        job : PollJob
            Job to poll.

        Returns
        -------
        PollOutcome
            ``Resolved``, ``PollFailed`` or ``TimedOut``. The job is not queried
            again once this returns.
        """
        for attempt in range(self._max_poll_attempts):
            if attempt > 0:
                await asyncio.sleep(delay=self._poll_interval_seconds)

            self._tracker.emit(phase="polling")
            state = await self._client.fetch_job(job_handle=job.job_handle)

            if isinstance(state, Resolved):
                await self._tracker.mark_complete(chunk_index=job.chunk_index)
                self._tracker.emit(phase="polling")
                log.info(
                    event="Poll job resolved",
                    field=job.field.value,
                    chunk_index=job.chunk_index,
                    attempts=attempt + 1,
                    asset_count=len(state.assets),
                    error_count=len(state.errors),
                )
                return state

            if isinstance(state, StillPending):
                log.debug(
                    event="Poll tick",
                    field=job.field.value,
                    chunk_index=job.chunk_index,
                    attempt=attempt + 1,
                    status=state.status,
                )
                continue

            if state.snippet:
                log.warning(
                    event="Poll job returned a terminal failure",
                    field=job.field.value,
                    chunk_index=job.chunk_index,
                    kind=state.kind.value,
                    snippet=state.snippet,
                )
            else:
                log.error(
                    event="Poll job failed",
                    field=job.field.value,
                    chunk_index=job.chunk_index,
                    kind=state.kind.value,
                    error=state.message,
                )
            return state

        log.error(
            event="Poll job timed out",
            field=job.field.value,
            chunk_index=job.chunk_index,
            attempts=self._max_poll_attempts,
        )
        return TimedOut(message=TIMEOUT_MESSAGE, attempts=self._max_poll_attempts)

    async def poll_all(self, *, jobs: t.Sequence[PollJob]) -> list[tuple[PollJob, PollOutcome]]:
        """
        Poll all jobs concurrently and wait for every one of them.

        Parameters
        ----------
        jobs : Sequence[PollJob]
            Jobs to poll.

        Returns
        -------
        list[tuple[PollJob, PollOutcome]]
            One outcome per job, in the order of ``jobs``. An exception escaping
            a job task is converted into a ``PollFailed`` for that job only.
        """
        if not jobs:
            return []
        log.info(event="Polling jobs", job_count=len(jobs))
        tasks = [
            asyncio.create_task(
                coro=self.poll_job(job=job),
                name=f"poll_{job.field.value}_{job.chunk_index}",
            )
            for job in jobs
        ]
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: list[tuple[PollJob, PollOutcome]] = []
        for job, result in zip(jobs, settled):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                log.error(
                    event="Poll task crashed",
                    field=job.field.value,
                    chunk_index=job.chunk_index,
                    error=str(object=result),
                )
                result = PollFailed(message=str(object=result) or type(result).__name__)
            outcomes.append((job, result))
        return outcomes
