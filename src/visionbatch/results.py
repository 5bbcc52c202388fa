"""
Outcome types produced by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from visionbatch.exceptions import NoResultsError
from visionbatch.fields import DescriptionField
from visionbatch.models import AssetResult


class ErrorKind(StrEnum):
    transport = "transport"
    rejected = "rejected"
    shape = "shape"
    timeout = "timeout"


class WarningKind(StrEnum):
    no_descriptions = "no_descriptions"
    backend_errors = "backend_errors"


class RunOutcome(StrEnum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    NO_RESULTS = "no_results"


@dataclass(frozen=True)
class ChunkOutcome:
    """A successful (sync or polled) contribution of one chunk to one field."""

    field: DescriptionField
    chunk_index: int
    assets: list[AssetResult]
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FieldAggregate:
    field: DescriptionField
    assets: list[AssetResult]
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FieldError:
    """
    Hard failure of one (field, chunk) submission or poll job.

    Parameters
    ----------
    field : DescriptionField
        Field the failed request belonged to.
    chunk_index : int
        Chunk the failed request carried.
    kind : ErrorKind
        Failure class.
    message : str
        Message prefixed with the field label (and batch number when the run
        has several chunks).
    """

    field: DescriptionField
    chunk_index: int
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class FieldWarning:
    field: DescriptionField
    kind: WarningKind
    message: str


@dataclass(frozen=True)
class FieldResult:
    field: DescriptionField
    text: str
    backend: str


@dataclass
class ItemResult:
    item_id: str
    fields: list[FieldResult] = field(default_factory=list)


@dataclass
class RunResult:
    """
    Complete accounting of one run.

    Parameters
    ----------
    outcome : RunOutcome
        ``NO_RESULTS`` when no field produced an aggregate, ``PARTIAL`` when
        anything failed or warned, ``COMPLETE`` otherwise.
    results : list[ItemResult]
        Items that received at least one description, in input order.
    field_errors : list[FieldError]
        Per-(field, chunk) hard failures.
    warnings : list[FieldWarning]
        Field-level problems that did not fail a request.
    unattributed : int
        Assets that could not be matched to any item and were dropped.
    credits : int | float | None
        Latest remaining-credit count reported by the service, if any.
    """

    outcome: RunOutcome
    results: list[ItemResult] = field(default_factory=list)
    field_errors: list[FieldError] = field(default_factory=list)
    warnings: list[FieldWarning] = field(default_factory=list)
    unattributed: int = 0
    credits: int | float | None = None

    def raise_for_outcome(self) -> None:
        if self.outcome is RunOutcome.NO_RESULTS:
            raise NoResultsError(field_errors=self.field_errors)
