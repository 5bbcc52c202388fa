"""
Tests for chunk construction in visionbatch.batching.
"""

import math

import pytest

from visionbatch.batching import build_chunks

from tests.mocks.vision import make_items


@pytest.mark.parametrize(
    ("item_count", "batch_size"),
    [(0, 1), (1, 1), (9, 10), (10, 10), (12, 10), (32, 10), (7, 3)],
)
def test_chunk_count_and_sizes(item_count: int, batch_size: int):
    """Test that chunking yields ceil(N/K) chunks whose sizes sum to N."""
    chunks = build_chunks(items=make_items(item_count), batch_size=batch_size)

    assert len(chunks) == math.ceil(item_count / batch_size)
    assert all(0 < len(chunk) <= batch_size for chunk in chunks)
    assert sum(len(chunk) for chunk in chunks) == item_count


def test_chunks_preserve_order_and_indices():
    """Test that items keep their order and chunk indices are contiguous."""
    items = make_items(12)

    chunks = build_chunks(items=items, batch_size=10)

    assert [chunk.index for chunk in chunks] == [0, 1]
    assert [item_id for chunk in chunks for item_id in chunk.item_ids] == [item.id for item in items]
    assert chunks[1].item_ids == ("1:110", "1:111")
    assert chunks[1].payloads == (b"png-10", b"png-11")


def test_empty_input_yields_no_chunks():
    assert build_chunks(items=[], batch_size=10) == []


@pytest.mark.parametrize("batch_size", [0, -1])
def test_non_positive_batch_size_raises(batch_size: int):
    with pytest.raises(ValueError, match="batch_size must be positive"):
        build_chunks(items=make_items(3), batch_size=batch_size)
