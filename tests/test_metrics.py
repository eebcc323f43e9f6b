import pytest
from fastapi import status
from httpx import AsyncClient, ASGITransport

from app.core.metrics import get_metrics_collector
from app.main import app


def test_collector_is_singleton():
    assert get_metrics_collector() is get_metrics_collector()


def test_record_call_aggregates_per_stage():
    metrics = get_metrics_collector()
    metrics.record_call("submit", latency_ms=100, success=True)
    metrics.record_call("submit", latency_ms=300, success=True)
    metrics.record_call("status", latency_ms=50, success=False, error_code="POLL_FAILED")

    snapshot = metrics.get_snapshot()

    assert snapshot["stages"]["submit"] == {"success_count": 2, "error_count": 0, "avg_ms": 200.0}
    assert snapshot["stages"]["status"]["error_count"] == 1
    assert snapshot["stages"]["result"]["success_count"] == 0
    assert snapshot["error_codes"] == {"POLL_FAILED": 1}


def test_wait_outcomes_and_reset():
    metrics = get_metrics_collector()
    metrics.record_wait_outcome("completed")
    metrics.record_wait_outcome("completed")
    metrics.record_wait_outcome("timed_out")

    assert metrics.get_snapshot()["wait_outcomes"] == {"completed": 2, "timed_out": 1}

    metrics.reset()
    assert metrics.get_snapshot()["wait_outcomes"] == {}


@pytest.mark.asyncio
async def test_metrics_endpoint():
    get_metrics_collector().record_call("result", latency_ms=20, success=False, error_code="RESULT_FETCH_FAILED")

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/v1/metrics")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    # Counters only; no prompts, URLs or request ids
    assert set(data.keys()) == {"uptimeSeconds", "stages", "errorCodes", "waitOutcomes"}
    assert data["errorCodes"] == {"RESULT_FETCH_FAILED": 1}
    assert data["stages"]["result"]["error_count"] == 1
