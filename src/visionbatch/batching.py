"""
Split work items into bounded-size chunks.
"""

from __future__ import annotations

import typing as t
from dataclasses import dataclass


@dataclass(frozen=True)
class WorkItem:
    """An image to describe, keyed by a caller-supplied identifier."""

    id: str
    payload: bytes


@dataclass(frozen=True)
class Chunk:
    """
    A group of work items sent together in one request.

    Parameters
    ----------
    index : int
        Position of the chunk in the run, used as the join key downstream.
    item_ids : tuple[str, ...]
        Identifiers of the items in the chunk, in original order.
    payloads : tuple[bytes, ...]
        Payloads aligned with ``item_ids``.
    """

    index: int
    item_ids: tuple[str, ...]
    payloads: tuple[bytes, ...]

    def __len__(self) -> int:
        return len(self.item_ids)


def build_chunks(*, items: t.Sequence[WorkItem], batch_size: int) -> list[Chunk]:
    """
    Partition items into consecutive chunks of at most ``batch_size`` items.

    Parameters
    ----------
    items : Sequence[WorkItem]
        Items in submission order.
    batch_size : int
        Maximum number of items per chunk.

    Returns
    -------
    list[Chunk]
        ``ceil(len(items) / batch_size)`` chunks with contiguous 0-based indices.

    Raises
    ------
    ValueError
        If ``batch_size`` is not positive.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    chunks: list[Chunk] = []
    for start in range(0, len(items), batch_size):
        window = items[start : start + batch_size]
        chunks.append(
            Chunk(
                index=len(chunks),
                item_ids=tuple(item.id for item in window),
                payloads=tuple(item.payload for item in window),
            )
        )
    return chunks
