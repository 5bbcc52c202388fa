import typing as t

import httpx
import pytest

from visionbatch.config import VisionConfig
from visionbatch.core import Orchestrator
from visionbatch.progress import ProgressEvent

from tests.mocks.vision import BASE_URL, FakeVisionAPI


@pytest.fixture(autouse=True)
def test_set_env(monkeypatch):
    monkeypatch.setenv("VISIONATI_API_KEY", "test-key")
    monkeypatch.delenv("VISIONATI_PROMPT", raising=False)


@pytest.fixture
def config() -> VisionConfig:
    """
    Create a run configuration pointing at the fake service with no poll delay.
    """
    return VisionConfig(
        api_key="test-key",
        base_url=BASE_URL,
        batch_size=10,
        poll_interval_seconds=0,
        max_poll_attempts=5,
    )


@pytest.fixture
def make_orchestrator(
    config: VisionConfig,
) -> t.Callable[..., tuple[Orchestrator, list[ProgressEvent]]]:
    """
    Build an orchestrator wired to a fake API, collecting progress events.

    Returns
    -------
    Callable[..., tuple[Orchestrator, list[ProgressEvent]]]
        Factory taking the fake API and optional config overrides.
    """

    def factory(
        api: FakeVisionAPI, **overrides: t.Any
    ) -> tuple[Orchestrator, list[ProgressEvent]]:
        events: list[ProgressEvent] = []
        run_config = config.model_copy(update=overrides) if overrides else config
        orchestrator = Orchestrator(config=run_config, on_progress=events.append)
        orchestrator._client_factory = lambda: httpx.AsyncClient(transport=api.transport())
        return orchestrator, events

    return factory


@pytest.fixture
def route_http_to(monkeypatch) -> t.Callable[[FakeVisionAPI], None]:
    """
    Send every ``httpx.AsyncClient`` created afterwards to a fake API.

    Used where the orchestrator is built internally (public API, CLI).
    """
    real_async_client = httpx.AsyncClient

    def route(api: FakeVisionAPI) -> None:
        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            lambda **kwargs: real_async_client(transport=api.transport(), **kwargs),
        )

    return route
