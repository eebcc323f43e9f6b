"""
Shared fixtures: a scripted in-memory queue provider and test settings.
No test talks to the real provider.
"""
from typing import Any, Dict, List, Optional

import pytest

from app.core.config import Settings
from app.core.metrics import get_metrics_collector
from app.services.image_jobs import ImageJobService


class FakeProvider:
    """
    Scripted provider. `statuses` are returned in order; the last one repeats.
    Every call is recorded in `calls`.
    """

    def __init__(
        self,
        request_id: str = "r1",
        statuses: Optional[List[Dict[str, Any]]] = None,
        result_payload: Optional[Dict[str, Any]] = None,
        submit_error: Optional[Exception] = None,
        status_error: Optional[Exception] = None,
        result_error: Optional[Exception] = None,
    ):
        self.request_id = request_id
        self.statuses = list(statuses or [{"status": "IN_QUEUE", "queue_position": 0}])
        self.result_payload = result_payload if result_payload is not None else {"images": []}
        self.submit_error = submit_error
        self.status_error = status_error
        self.result_error = result_error
        self.calls: List[tuple] = []

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

    async def submit(self, model_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("submit", model_id, payload))
        if self.submit_error:
            raise self.submit_error
        return {"request_id": self.request_id, "status": "IN_QUEUE"}

    async def status(self, model_id: str, request_id: str) -> Dict[str, Any]:
        self.calls.append(("status", model_id, request_id))
        if self.status_error:
            raise self.status_error
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    async def result(self, model_id: str, request_id: str) -> Dict[str, Any]:
        self.calls.append(("result", model_id, request_id))
        if self.result_error:
            raise self.result_error
        return self.result_payload


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def settings():
    return Settings(fal_key="test-key", _env_file=None)


@pytest.fixture
def unconfigured_settings():
    return Settings(fal_key="", fal_api_key="", fal_token="", _env_file=None)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def service(settings, provider):
    return ImageJobService(settings=settings, provider=provider)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_metrics():
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
