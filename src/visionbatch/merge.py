"""
Merge chunk-level results into one aggregate per field.
"""

from __future__ import annotations

import typing as t

from visionbatch.fields import DescriptionField
from visionbatch.results import ChunkOutcome, FieldAggregate


def merge_field_outcomes(
    *,
    outcomes: t.Iterable[ChunkOutcome],
    fields: t.Sequence[DescriptionField],
) -> dict[DescriptionField, FieldAggregate]:
    """
    Concatenate chunk outcomes per field in chunk-index order.

    Parameters
    ----------
    outcomes : Iterable[ChunkOutcome]
        Successful chunk outcomes in any order.
    fields : Sequence[DescriptionField]
        Requested fields; the result is keyed in this order.

    Returns
    -------
    dict[DescriptionField, FieldAggregate]
        One aggregate per field with at least one outcome. Fields with none
        are absent.
    """
    by_field: dict[DescriptionField, list[ChunkOutcome]] = {}
    for outcome in outcomes:
        by_field.setdefault(outcome.field, []).append(outcome)

    aggregates: dict[DescriptionField, FieldAggregate] = {}
    for field in fields:
        field_outcomes = sorted(by_field.get(field, []), key=lambda outcome: outcome.chunk_index)
        if not field_outcomes:
            continue
        aggregates[field] = FieldAggregate(
            field=field,
            assets=[asset for outcome in field_outcomes for asset in outcome.assets],
            errors=[error for outcome in field_outcomes for error in outcome.errors],
        )
    return aggregates

