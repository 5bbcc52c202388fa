"""
HTTP adapter for the vision service fetch and poll endpoints.
"""

from __future__ import annotations

import base64
import typing as t

import httpx
import structlog

from visionbatch.batching import Chunk
from visionbatch.config import VisionConfig
from visionbatch.fields import FIELD_CONFIGS, DescriptionField
from visionbatch.responses import (
    PollFailed,
    PollState,
    SubmissionState,
    TransportFailure,
    classify_poll,
    classify_submission,
)
from visionbatch.results import ErrorKind

log = structlog.get_logger(__name__)

ClientFactory = t.Callable[[], httpx.AsyncClient]


class VisionClient:
    """
    Issue fetch and poll calls and classify their answers.

    Parameters
    ----------
    config : VisionConfig
        Run configuration.
    http_client : httpx.AsyncClient
        Client shared by all calls of the run.
    """

    def __init__(self, *, config: VisionConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http_client = http_client

    @property
    def auth_headers(self) -> dict[str, str]:
        return {"X-API-Key": f"Token {self._config.api_key}"}

    def build_payload(self, *, field: DescriptionField, chunk: Chunk) -> dict[str, t.Any]:
        """
        Build the JSON body of a fetch request.

        Parameters
        ----------
        field : DescriptionField
            Field whose role is requested.
        chunk : Chunk
            Images to send.

        Returns
        -------
        dict[str, typing.Any]
            Fetch request body.
        """
        payload: dict[str, t.Any] = {
            "file": [base64.b64encode(s=data).decode(encoding="ascii") for data in chunk.payloads],
            "file_name": list(chunk.item_ids),
            "role": FIELD_CONFIGS[field].role,
            "backend": [self._config.backend],
            "language": self._config.language,
            "feature": ["descriptions"],
        }
        # custom prompt overrides role
        prompt = self._config.custom_prompt
        if prompt is not None:
            payload["prompt"] = prompt
        return payload

    async def submit(self, *, field: DescriptionField, chunk: Chunk) -> SubmissionState:
        """
        Send one chunk for one field.

        Parameters
        ----------
        field : DescriptionField
            Requested field.
        chunk : Chunk
            Images to describe.

        Returns
        -------
        SubmissionState
            Classified response, or ``TransportFailure`` if the call itself failed.
        """
        log.debug(
            event="Submitting chunk",
            field=field.value,
            chunk_index=chunk.index,
            item_count=len(chunk),
        )
        try:
            response = await self._http_client.post(
                url=self._config.fetch_url,
                headers=self.auth_headers,
                json=self.build_payload(field=field, chunk=chunk),
            )
        except httpx.HTTPError as e:
            log.error(
                event="Submission transport error",
                field=field.value,
                chunk_index=chunk.index,
                error=str(object=e),
            )
            return TransportFailure(message=str(object=e) or type(e).__name__)

        state = classify_submission(status_code=response.status_code, text=response.text)
        log.debug(
            event="Submission classified",
            field=field.value,
            chunk_index=chunk.index,
            status_code=response.status_code,
            state=type(state).__name__,
        )
        return state

    async def fetch_job(self, *, job_handle: str) -> PollState:
        """
        Query a job once.

        Parameters
        ----------
        job_handle : str
            Response URI returned by the fetch endpoint.

        Returns
        -------
        PollState
            Classified poll answer. Transport errors become ``PollFailed``.
        """
        try:
            response = await self._http_client.get(url=job_handle, headers=self.auth_headers)
        except httpx.HTTPError as e:
            return PollFailed(
                message=str(object=e) or type(e).__name__,
                kind=ErrorKind.transport,
            )
        return classify_poll(status_code=response.status_code, text=response.text)
