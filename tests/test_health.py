import pytest
from fastapi.testclient import TestClient

from app.core.config import DEFAULT_SUPPORTED_MODELS, get_settings
from app.main import create_app


@pytest.fixture
def client_with_env(monkeypatch):
    def _make(fal_key=None):
        for name in ("FAL_KEY", "FAL_API_KEY", "FAL_TOKEN"):
            monkeypatch.delenv(name, raising=False)
        if fal_key is not None:
            monkeypatch.setenv("FAL_KEY", fal_key)
        get_settings.cache_clear()
        return TestClient(create_app())

    yield _make
    get_settings.cache_clear()


def test_healthz(client_with_env):
    response = client_with_env().get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_detailed_health_configured(client_with_env):
    response = client_with_env(fal_key="secret-value").get("/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["service"] == "image-job-service"
    assert data["provider"] == {
        "configured": True,
        "model": "fal-ai/gemini-25-flash-image/edit",
        "supportedModels": DEFAULT_SUPPORTED_MODELS,
    }
    assert "secret-value" not in response.text


def test_detailed_health_unconfigured(client_with_env):
    data = client_with_env().get("/v1/health").json()

    assert data["ok"] is False
    assert data["provider"]["configured"] is False


def test_unknown_route_is_not_found(client_with_env):
    response = client_with_env().get("/v1/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
