"""
Classification of raw vision service responses into tagged states.

Every response is inspected exactly once here. Downstream code only matches on
the returned dataclasses and never looks at raw payloads again.
"""

from __future__ import annotations

import json
import typing as t
from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from visionbatch.models import AssetResult, VisionResponse
from visionbatch.results import ErrorKind

log = structlog.get_logger(__name__)

PENDING_STATUSES = frozenset({"queued", "processing"})
SNIPPET_LENGTH = 200


@dataclass(frozen=True)
class SyncResult:
    """Submission answered with completed assets."""

    assets: list[AssetResult]
    errors: list[str] = field(default_factory=list)
    credits: int | float | None = None


@dataclass(frozen=True)
class NeedsPolling:
    """Submission accepted; results must be fetched from ``job_handle``."""

    job_handle: str
    credits: int | float | None = None


@dataclass(frozen=True)
class RemoteError:
    message: str


@dataclass(frozen=True)
class UnknownShape:
    message: str
    snippet: str = ""


@dataclass(frozen=True)
class TransportFailure:
    message: str


SubmissionState = t.Union[SyncResult, NeedsPolling, RemoteError, UnknownShape, TransportFailure]


@dataclass(frozen=True)
class Resolved:
    """Poll returned completed assets, possibly with backend errors alongside."""

    assets: list[AssetResult]
    errors: list[str] = field(default_factory=list)
    credits: int | float | None = None


@dataclass(frozen=True)
class StillPending:
    status: str | None = None


@dataclass(frozen=True)
class PollFailed:
    message: str
    kind: ErrorKind = ErrorKind.rejected
    snippet: str = ""


PollState = t.Union[Resolved, StillPending, PollFailed]


def _snippet(*, text: str) -> str:
    return text[:SNIPPET_LENGTH]


def _decode(*, text: str) -> tuple[t.Any, VisionResponse | None]:
    """
    Decode a body into raw JSON and the validated response model.

    Parameters
    ----------
    text : str
        Raw response body.

    Returns
    -------
    tuple[typing.Any, VisionResponse | None]
        Decoded JSON (``None`` if not JSON) and the model (``None`` if the
        JSON does not fit the response schema).
    """
    try:
        data = json.loads(s=text)
    except ValueError:
        return None, None
    if not isinstance(data, dict):
        return data, None
    try:
        return data, VisionResponse.model_validate(obj=data)
    except ValidationError as error:
        log.debug(
            event="Response failed schema validation",
            error_count=error.error_count(),
        )
        return data, None


def _rejection_message(*, status_code: int, text: str) -> str:
    data, _ = _decode(text=text)
    if isinstance(data, dict):
        detail = data.get("error") or data.get("message")
        if detail:
            return str(object=detail)
        return f"API error ({status_code})"
    return f"API error ({status_code}): {_snippet(text=text)}"


def classify_submission(*, status_code: int, text: str) -> SubmissionState:
    """
    Classify the immediate answer to a fetch request.

    Parameters
    ----------
    status_code : int
        HTTP status code of the response.
    text : str
        Raw response body.

    Returns
    -------
    SubmissionState
        ``SyncResult``, ``NeedsPolling``, ``RemoteError`` or ``UnknownShape``.
    """
    if not 200 <= status_code < 300:
        return RemoteError(message=_rejection_message(status_code=status_code, text=text))

    data, response = _decode(text=text)
    if response is None:
        snippet = _snippet(text=text)
        return UnknownShape(message=f"Unexpected API response: {snippet}", snippet=snippet)

    if response.assets:
        return SyncResult(
            assets=response.assets,
            errors=response.errors,
            credits=response.credits,
        )
    if response.response_uri:
        return NeedsPolling(job_handle=response.response_uri, credits=response.credits)
    if response.error or response.message:
        return RemoteError(message=t.cast(str, response.error or response.message))
    if response.errors:
        return RemoteError(message="; ".join(response.errors))
    return UnknownShape(
        message="No results returned.",
        snippet=_snippet(text=json.dumps(obj=data)),
    )


def classify_poll(*, status_code: int, text: str) -> PollState:
    """
    Classify one answer from a job's poll endpoint.

    Parameters
    ----------
    status_code : int
        HTTP status code of the response. ``202`` means the job is still running.
    text : str
        Raw response body.

    Returns
    -------
    PollState
        ``Resolved``, ``StillPending`` or ``PollFailed``.
    """
    if status_code == 202:
        return StillPending(status="accepted")
    if not 200 <= status_code < 300:
        return PollFailed(message=f"Polling error ({status_code}): {_snippet(text=text)}")

    data, response = _decode(text=text)
    if response is None:
        snippet = _snippet(text=text)
        return PollFailed(
            message=f"Unexpected API response: {snippet}",
            kind=ErrorKind.shape,
            snippet=snippet,
        )

    if response.assets:
        return Resolved(
            assets=response.assets,
            errors=response.errors,
            credits=response.credits,
        )
    if response.status in PENDING_STATUSES or response.response_uri:
        return StillPending(status=response.status)
    if response.errors:
        return PollFailed(message="; ".join(response.errors))
    if response.has_empty_assets:
        return PollFailed(
            message="No results returned. The AI backend may have timed out. Please try again.",
            snippet=_snippet(text=json.dumps(obj=data)),
        )

    snippet = _snippet(text=json.dumps(obj=data))
    if response.error or response.message:
        return PollFailed(
            message=t.cast(str, response.error or response.message),
            snippet=snippet,
        )
    return PollFailed(
        message=f"Unexpected API response: {snippet}",
        kind=ErrorKind.shape,
        snippet=snippet,
    )
