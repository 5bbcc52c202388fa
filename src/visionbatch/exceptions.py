"""
Visionbatch-specific runtime exceptions.
"""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from visionbatch.results import FieldError


class VisionBatchError(RuntimeError):
    """
    Base class for errors raised to callers of the orchestrator.
    """


class NoResultsError(VisionBatchError):
    """
    Raised when a run produced no aggregate for any requested field.

    Parameters
    ----------
    field_errors : list[FieldError]
        Per-(field, chunk) errors captured during the run.
    """

    def __init__(self, *, field_errors: t.Sequence[FieldError]) -> None:
        self.field_errors = list(field_errors)
        messages = [error.message for error in self.field_errors]
        if not messages:
            messages = [
                "The API returned no results. Try a different model or check your API credits."
            ]
        super().__init__("\n".join(messages))
