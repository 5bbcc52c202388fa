import json
import typing as t

import httpx

from visionbatch.batching import WorkItem

BASE_URL = "https://vision.test"
TEMP_DIR = "/tmp/files20260214-1-ei7mrm"

# Submission behaviours
SYNC = "sync"
POLL = "poll"
REJECT = "reject"
HTTP_ERROR = "http_error"
UNEXPECTED = "unexpected"
CONNECT_ERROR = "connect_error"
EMPTY_DESCRIPTIONS = "empty_descriptions"
NEVER_READY = "never_ready"
POLL_ERRORS = "poll_errors"


class FakeVisionAPI:
    """
    Emulate the subset of the Visionati fetch/poll endpoints used in tests.

    Behaviour is chosen per role, and can be overridden per chunk by keying
    ``chunk_modes`` with ``(role, first file name of the chunk)``.
    """

    def __init__(
        self,
        *,
        modes: dict[str, str] | None = None,
        chunk_modes: dict[tuple[str, str], str] | None = None,
        ready_after: int = 1,
        rename_assets: bool = False,
        backend_errors: list[str] | None = None,
        credits: int | None = None,
    ) -> None:
        self._modes = modes or {}
        self._chunk_modes = chunk_modes or {}
        self._ready_after = ready_after
        self._rename_assets = rename_assets
        self._backend_errors = backend_errors or []
        self._credits = credits
        self._jobs: dict[str, dict[str, t.Any]] = {}
        self._counter = 0
        self.submissions: list[dict[str, t.Any]] = []
        self.poll_counts: dict[str, int] = {}

    def _json_response(self, *, status_code: int, payload: dict[str, t.Any]) -> httpx.Response:
        return httpx.Response(status_code=status_code, json=payload)

    def _next_id(self, *, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def _mode_for(self, *, role: str, names: list[str]) -> str:
        first = names[0] if names else ""
        return self._chunk_modes.get((role, first), self._modes.get(role, SYNC))

    def _returned_name(self, *, name: str) -> str:
        if not self._rename_assets:
            return name
        return f"{TEMP_DIR}/{name.replace(':', '_')}"

    def _assets(self, *, role: str, names: list[str], empty: bool = False) -> list[dict[str, t.Any]]:
        return [
            {
                "name": self._returned_name(name=name),
                "descriptions": [
                    {"description": "" if empty else f"{role} of {name}", "source": "gemini"}
                ],
            }
            for name in names
        ]

    def _results(self, *, role: str, names: list[str], empty: bool = False) -> dict[str, t.Any]:
        payload: dict[str, t.Any] = {
            "status": "completed",
            "all": {
                "assets": self._assets(role=role, names=names, empty=empty),
                "errors": list(self._backend_errors),
            },
        }
        if self._credits is not None:
            payload["credits"] = self._credits
        return payload

    def _handle_fetch(self, *, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.read())
        self.submissions.append(body)
        role = body["role"]
        names = body["file_name"]
        mode = self._mode_for(role=role, names=names)

        if mode == CONNECT_ERROR:
            raise httpx.ConnectError("connection refused", request=request)
        if mode == SYNC:
            return self._json_response(status_code=200, payload=self._results(role=role, names=names))
        if mode == EMPTY_DESCRIPTIONS:
            return self._json_response(
                status_code=200, payload=self._results(role=role, names=names, empty=True)
            )
        if mode == REJECT:
            return self._json_response(status_code=200, payload={"error": "Insufficient credits"})
        if mode == HTTP_ERROR:
            return self._json_response(status_code=401, payload={"message": "Invalid API key"})
        if mode == UNEXPECTED:
            return self._json_response(status_code=200, payload={"status": "weird"})

        job_id = self._next_id(prefix="job")
        self._jobs[job_id] = {"role": role, "names": names, "mode": mode}
        self.poll_counts[job_id] = 0
        return self._json_response(
            status_code=200,
            payload={
                "status": "queued",
                "response_uri": f"{BASE_URL}/api/response/{job_id}",
            },
        )

    def _handle_poll(self, *, job_id: str) -> httpx.Response:
        job = self._jobs.get(job_id)
        if job is None:
            return httpx.Response(status_code=404, text="not found")
        self.poll_counts[job_id] += 1
        mode = job["mode"]
        if mode == NEVER_READY:
            return self._json_response(status_code=200, payload={"status": "processing"})
        if self.poll_counts[job_id] < self._ready_after:
            return self._json_response(status_code=200, payload={"status": "processing"})
        if mode == POLL_ERRORS:
            return self._json_response(
                status_code=200,
                payload={"status": "completed", "all": {"errors": ["gemini: timeout"]}},
            )
        return self._json_response(
            status_code=200,
            payload=self._results(role=job["role"], names=job["names"]),
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/api/fetch":
            return self._handle_fetch(request=request)
        if request.method == "GET" and path.startswith("/api/response/"):
            return self._handle_poll(job_id=path.rsplit("/", 1)[-1])
        return httpx.Response(status_code=404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_items(count: int) -> list[WorkItem]:
    """
    Build ``count`` work items with node-like ids (``"1:100"``, ``"1:101"``, ...).
    """
    return [
        WorkItem(id=f"1:{100 + index}", payload=f"png-{index}".encode()) for index in range(count)
    ]
