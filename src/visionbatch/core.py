"""
Core engine: chunk, submit, poll, merge and reconcile one run.
All (field, chunk) submissions and all poll jobs run concurrently; failures are
captured per (field, chunk) and never cancel sibling work.
"""

from __future__ import annotations

import asyncio
import typing as t
import uuid

import httpx
import structlog

from visionbatch.batching import Chunk, WorkItem, build_chunks
from visionbatch.client import ClientFactory, VisionClient
from visionbatch.config import VisionConfig
from visionbatch.fields import FIELD_CONFIGS, DescriptionField, field_labels
from visionbatch.merge import merge_field_outcomes
from visionbatch.polling import PollCoordinator, PollJob
from visionbatch.progress import ProgressCallback, ProgressTracker
from visionbatch.reconcile import reconcile
from visionbatch.responses import (
    NeedsPolling,
    RemoteError,
    Resolved,
    SubmissionState,
    SyncResult,
    TransportFailure,
    UnknownShape,
)
from visionbatch.results import (
    ChunkOutcome,
    ErrorKind,
    FieldAggregate,
    FieldError,
    FieldWarning,
    ItemResult,
    RunOutcome,
    RunResult,
    WarningKind,
)
from visionbatch.utils.logging import logging_context

log = structlog.get_logger(__name__)


def _plural(*, count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class Orchestrator:
    """
    Run the submit-poll-merge-reconcile lifecycle for a set of images.

    Parameters
    ----------
    config : VisionConfig
        Run configuration.
    on_progress : ProgressCallback | None
        Optional receiver of progress events.
    """

    def __init__(
        self,
        *,
        config: VisionConfig,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._config = config
        self._on_progress = on_progress
        self._client_factory: ClientFactory = lambda: httpx.AsyncClient(
            timeout=config.request_timeout_seconds
        )

        log.debug(
            event="Initialized Orchestrator",
            backend=config.backend,
            language=config.language,
            batch_size=config.batch_size,
            poll_interval_seconds=config.poll_interval_seconds,
            max_poll_attempts=config.max_poll_attempts,
        )

    @staticmethod
    def _error_label(*, field: DescriptionField, chunk_index: int, chunk_count: int) -> str:
        label = FIELD_CONFIGS[field].label
        if chunk_count > 1:
            return f"{label} (batch {chunk_index + 1})"
        return label

    @staticmethod
    def _validate_inputs(
        *, items: t.Sequence[WorkItem], fields: t.Sequence[DescriptionField]
    ) -> None:
        if not fields:
            raise ValueError(
                "No fields selected. Choose at least one field (Alt Text, Caption, or Description)."
            )
        if len(set(fields)) != len(fields):
            raise ValueError("Each field can only be requested once per run")
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate item id: {item.id!r}")
            seen.add(item.id)

    async def run(
        self,
        *,
        items: t.Sequence[WorkItem],
        fields: t.Sequence[DescriptionField],
    ) -> RunResult:
        """
        Describe ``items`` for every requested field.

        Parameters
        ----------
        items : Sequence[WorkItem]
            Images to describe, with unique ids.
        fields : Sequence[DescriptionField]
            Requested fields, each at most once.

        Returns
        -------
        RunResult
            Per-item results plus per-field errors and warnings.

        Raises
        ------
        ValueError
            If ``fields`` is empty or contains duplicates, or item ids repeat.
        """
        self._validate_inputs(items=items, fields=fields)
        fields = list(fields)
        if not items:
            log.info(event="Nothing to describe")
            return RunResult(outcome=RunOutcome.NO_RESULTS)

        with logging_context(run_id=str(object=uuid.uuid4())):
            return await self._run(items=items, fields=fields)

    async def _run(
        self,
        *,
        items: t.Sequence[WorkItem],
        fields: list[DescriptionField],
    ) -> RunResult:
        chunks = build_chunks(items=items, batch_size=self._config.batch_size)
        tracker = ProgressTracker(chunks=chunks, callback=self._on_progress)
        tracker.emit(
            phase="submitting",
            message=f"Processing {_plural(count=len(items), word='image')} "
            f"({field_labels(fields)})...",
        )
        log.info(
            event="Starting run",
            item_count=len(items),
            chunk_count=len(chunks),
            fields=[field.value for field in fields],
        )

        outcomes: list[ChunkOutcome] = []
        errors: list[FieldError] = []
        credits: int | float | None = None

        async with self._client_factory() as http_client:
            client = VisionClient(config=self._config, http_client=http_client)
            submissions = await self._submit_all(client=client, fields=fields, chunks=chunks)

            jobs: list[PollJob] = []
            for field, chunk, state in submissions:
                label = self._error_label(
                    field=field, chunk_index=chunk.index, chunk_count=len(chunks)
                )
                if isinstance(state, SyncResult):
                    outcomes.append(
                        ChunkOutcome(
                            field=field,
                            chunk_index=chunk.index,
                            assets=state.assets,
                            errors=state.errors,
                        )
                    )
                    if await tracker.mark_complete(chunk_index=chunk.index):
                        tracker.emit(phase="submitting")
                    if state.credits is not None:
                        credits = state.credits
                elif isinstance(state, NeedsPolling):
                    jobs.append(
                        PollJob(field=field, chunk_index=chunk.index, job_handle=state.job_handle)
                    )
                    if state.credits is not None:
                        credits = state.credits
                else:
                    errors.append(
                        FieldError(
                            field=field,
                            chunk_index=chunk.index,
                            kind=self._submission_error_kind(state=state),
                            message=f"{label}: {state.message}",
                        )
                    )

            if jobs:
                tracker.emit(
                    phase="polling",
                    message=f"Waiting for results ({tracker.completed_units}/"
                    f"{tracker.total_units} images)...",
                )
                coordinator = PollCoordinator(
                    client=client,
                    tracker=tracker,
                    poll_interval_seconds=self._config.poll_interval_seconds,
                    max_poll_attempts=self._config.max_poll_attempts,
                )
                for job, outcome in await coordinator.poll_all(jobs=jobs):
                    label = self._error_label(
                        field=job.field, chunk_index=job.chunk_index, chunk_count=len(chunks)
                    )
                    if isinstance(outcome, Resolved):
                        outcomes.append(
                            ChunkOutcome(
                                field=job.field,
                                chunk_index=job.chunk_index,
                                assets=outcome.assets,
                                errors=outcome.errors,
                            )
                        )
                        if outcome.credits is not None:
                            credits = outcome.credits
                    else:
                        errors.append(
                            FieldError(
                                field=job.field,
                                chunk_index=job.chunk_index,
                                kind=outcome.kind,
                                message=f"{label}: {outcome.message}",
                            )
                        )

        field_order = {field: position for position, field in enumerate(fields)}
        errors.sort(key=lambda error: (field_order[error.field], error.chunk_index))

        aggregates = merge_field_outcomes(outcomes=outcomes, fields=fields)
        if not aggregates:
            log.error(
                event="Run produced no results",
                error_count=len(errors),
            )
            return RunResult(
                outcome=RunOutcome.NO_RESULTS,
                field_errors=errors,
                credits=credits,
            )

        reconciliation = reconcile(
            aggregates=aggregates,
            item_ids=[item.id for item in items],
            default_backend=self._config.backend,
        )
        warnings = self._collect_warnings(aggregates=aggregates, results=reconciliation.results)

        outcome = RunOutcome.PARTIAL if errors or warnings else RunOutcome.COMPLETE
        log.info(
            event="Run finished",
            outcome=outcome.value,
            described_count=len(reconciliation.results),
            error_count=len(errors),
            warning_count=len(warnings),
            unattributed=reconciliation.unattributed,
        )
        return RunResult(
            outcome=outcome,
            results=reconciliation.results,
            field_errors=errors,
            warnings=warnings,
            unattributed=reconciliation.unattributed,
            credits=credits,
        )

    async def _submit_all(
        self,
        *,
        client: VisionClient,
        fields: list[DescriptionField],
        chunks: list[Chunk],
    ) -> list[tuple[DescriptionField, Chunk, SubmissionState]]:
        """
        Issue one request per (field, chunk) pair at once and wait for all.

        Parameters
        ----------
        client : VisionClient
            Client of the run.
        fields : list[DescriptionField]
            Requested fields.
        chunks : list[Chunk]
            Chunks of the run.

        Returns
        -------
        list[tuple[DescriptionField, Chunk, SubmissionState]]
            Classified submissions in (field, chunk) order. A task that raised
            is recorded as a ``TransportFailure``.
        """
        pairs = [(field, chunk) for field in fields for chunk in chunks]
        log.info(event="Submitting requests", request_count=len(pairs))
        tasks = [
            asyncio.create_task(
                coro=client.submit(field=field, chunk=chunk),
                name=f"submit_{field.value}_{chunk.index}",
            )
            for field, chunk in pairs
        ]
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        submissions: list[tuple[DescriptionField, Chunk, SubmissionState]] = []
        for (field, chunk), result in zip(pairs, settled):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                log.error(
                    event="Submission task crashed",
                    field=field.value,
                    chunk_index=chunk.index,
                    error=str(object=result),
                )
                result = TransportFailure(message=str(object=result) or type(result).__name__)
            submissions.append((field, chunk, result))
        return submissions

    @staticmethod
    def _submission_error_kind(
        *, state: RemoteError | UnknownShape | TransportFailure
    ) -> ErrorKind:
        if isinstance(state, RemoteError):
            return ErrorKind.rejected
        if isinstance(state, UnknownShape):
            return ErrorKind.shape
        return ErrorKind.transport

    @staticmethod
    def _collect_warnings(
        *,
        aggregates: t.Mapping[DescriptionField, FieldAggregate],
        results: list[ItemResult],
    ) -> list[FieldWarning]:
        described = {field_result.field for item in results for field_result in item.fields}
        warnings: list[FieldWarning] = []
        for field, aggregate in aggregates.items():
            label = FIELD_CONFIGS[field].label
            if aggregate.errors:
                log.warning(
                    event="Backend errors alongside results",
                    field=field.value,
                    errors=aggregate.errors,
                )
                warnings.append(
                    FieldWarning(
                        field=field,
                        kind=WarningKind.backend_errors,
                        message=f"{label}: {'; '.join(aggregate.errors)}",
                    )
                )
            if aggregate.assets and field not in described:
                log.warning(
                    event="No descriptions returned for field",
                    field=field.value,
                    asset_count=len(aggregate.assets),
                )
                warnings.append(
                    FieldWarning(
                        field=field,
                        kind=WarningKind.no_descriptions,
                        message=f"{label}: No descriptions returned. The model may not have "
                        "produced output for this role. Try a different model.",
                    )
                )
        return warnings
