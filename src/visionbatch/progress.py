"""
Observational progress channel for a run.
"""

from __future__ import annotations

import asyncio
import typing as t
from dataclasses import dataclass

import structlog

from visionbatch.batching import Chunk

log = structlog.get_logger(__name__)

ProgressPhase = t.Literal["submitting", "polling"]


@dataclass(frozen=True)
class ProgressEvent:
    """
    Snapshot sent to the progress callback.

    Parameters
    ----------
    phase : {"submitting", "polling"}
        Stage of the run that emitted the event.
    completed_units : int
        Items whose chunk has completed for at least one field.
    total_units : int
        Items in the run.
    message : str | None
        Optional human-readable status line.
    """

    phase: ProgressPhase
    completed_units: int
    total_units: int
    message: str | None = None


ProgressCallback = t.Callable[[ProgressEvent], None]


class ProgressTracker:
    """
    Count completed items by distinct chunk, not by request or poll attempt.

    Parameters
    ----------
    chunks : Sequence[Chunk]
        Chunks of the run.
    callback : ProgressCallback | None
        Receiver of progress events. Failures inside it are logged and ignored.
    """

    def __init__(
        self,
        *,
        chunks: t.Sequence[Chunk],
        callback: ProgressCallback | None = None,
    ) -> None:
        self._chunk_sizes = {chunk.index: len(chunk) for chunk in chunks}
        self._total_units = sum(self._chunk_sizes.values())
        self._completed_chunks: set[int] = set()
        self._completed_units = 0
        self._lock = asyncio.Lock()
        self._callback = callback

    @property
    def total_units(self) -> int:
        return self._total_units

    @property
    def completed_units(self) -> int:
        return self._completed_units

    async def mark_complete(self, *, chunk_index: int) -> bool:
        """
        Record that a chunk produced results for some field.

        Parameters
        ----------
        chunk_index : int
            Index of the completed chunk.

        Returns
        -------
        bool
            ``True`` if this chunk was not already counted.
        """
        async with self._lock:
            if chunk_index in self._completed_chunks:
                return False
            self._completed_chunks.add(chunk_index)
            self._completed_units += self._chunk_sizes.get(chunk_index, 0)
            return True

    def emit(self, *, phase: ProgressPhase, message: str | None = None) -> None:
        if self._callback is None:
            return
        event = ProgressEvent(
            phase=phase,
            completed_units=self._completed_units,
            total_units=self._total_units,
            message=message,
        )
        try:
            self._callback(event)
        except Exception as e:
            log.warning(
                event="Progress callback failed",
                phase=phase,
                error=str(object=e),
            )
