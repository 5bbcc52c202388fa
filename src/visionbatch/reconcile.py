"""
Map asset names returned by the vision service back to original item ids.

The service may move a submitted name into a server-side temporary path and
replace ``:`` with ``_``, e.g. ``"1:2504"`` comes back as
``"/tmp/files20260214-1-ei7mrm/1_2504"``. Matching is a fixed strategy table:

1. exact match of the returned name,
2. basename of the returned name against each id with ``:`` replaced by ``_``.

Anything else is unattributable and dropped.
"""

from __future__ import annotations

import typing as t
from dataclasses import dataclass

import structlog

from visionbatch.fields import DescriptionField
from visionbatch.results import FieldAggregate, FieldResult, ItemResult

log = structlog.get_logger(__name__)

PATH_SEPARATOR = "/"
SUBSTITUTIONS = ((":", "_"),)


def _service_basename(*, item_id: str) -> str:
    transformed = item_id
    for original, placeholder in SUBSTITUTIONS:
        transformed = transformed.replace(original, placeholder)
    return transformed


class NameIndex:
    """
    Lookup table from returned asset names to known item ids.

    Parameters
    ----------
    item_ids : Sequence[str]
        Known item ids, in input order.
    """

    def __init__(self, *, item_ids: t.Sequence[str]) -> None:
        self._exact = set(item_ids)
        self._by_basename: dict[str, str] = {}
        for item_id in item_ids:
            # first id wins when two ids collapse to the same basename
            self._by_basename.setdefault(_service_basename(item_id=item_id), item_id)
        self._strategies: tuple[t.Callable[[str], str | None], ...] = (
            self._match_exact,
            self._match_basename,
        )

    def _match_exact(self, name: str) -> str | None:
        return name if name in self._exact else None

    def _match_basename(self, name: str) -> str | None:
        basename = name.rsplit(PATH_SEPARATOR, 1)[-1]
        return self._by_basename.get(basename)

    def match(self, *, name: str) -> str | None:
        if not name:
            return None
        for strategy in self._strategies:
            item_id = strategy(name)
            if item_id is not None:
                return item_id
        return None


def match_asset_name(*, name: str, item_ids: t.Sequence[str]) -> str | None:
    return NameIndex(item_ids=item_ids).match(name=name)


@dataclass
class Reconciliation:
    results: list[ItemResult]
    unattributed: int = 0


def reconcile(
    *,
    aggregates: t.Mapping[DescriptionField, FieldAggregate],
    item_ids: t.Sequence[str],
    default_backend: str,
) -> Reconciliation:
    """
    Build per-item results from merged field aggregates.

    Parameters
    ----------
    aggregates : Mapping[DescriptionField, FieldAggregate]
        Merged results, keyed in requested field order.
    item_ids : Sequence[str]
        Original item ids, in input order.
    default_backend : str
        Backend name used when a description does not report its source.

    Returns
    -------
    Reconciliation
        Items with at least one non-empty description, in input order, and
        the count of assets that matched no item.
    """
    index = NameIndex(item_ids=item_ids)
    by_item: dict[str, ItemResult] = {item_id: ItemResult(item_id=item_id) for item_id in item_ids}
    unattributed = 0

    for field, aggregate in aggregates.items():
        for asset in aggregate.assets:
            item_id = index.match(name=asset.name)
            if item_id is None:
                unattributed += 1
                log.warning(
                    event="Dropping unattributable asset",
                    field=field.value,
                    asset_name=asset.name,
                )
                continue
            if not asset.descriptions:
                continue
            first = asset.descriptions[0]
            if not first.text:
                continue
            item = by_item[item_id]
            if any(existing.field == field for existing in item.fields):
                log.debug(
                    event="Ignoring duplicate asset for item",
                    field=field.value,
                    item_id=item_id,
                )
                continue
            item.fields.append(
                FieldResult(field=field, text=first.text, backend=first.source or default_backend)
            )

    return Reconciliation(
        results=[item for item in by_item.values() if item.fields],
        unattributed=unattributed,
    )
