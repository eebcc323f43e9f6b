import pytest
from pydantic import ValidationError

from app.core.config import DEFAULT_SUPPORTED_MODELS, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "FAL_KEY", "FAL_API_KEY", "FAL_TOKEN",
        "FAL_NANO_BANANA_MODEL_ID", "FAL_NANO_BANANA_SUBPATH",
        "FAL_SUPPORTED_MODELS", "IMAGE_JOB_POLL_INTERVAL_MS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.fal_configured is False
    assert settings.default_model == "fal-ai/gemini-25-flash-image/edit"
    assert settings.fal_supported_models == DEFAULT_SUPPORTED_MODELS
    assert settings.fal_queue_base_url == "https://queue.fal.run"
    assert settings.image_job_poll_interval_ms == 2000
    assert settings.image_job_max_wait_ms == 120000


@pytest.mark.parametrize("env_name", ["FAL_KEY", "FAL_API_KEY", "FAL_TOKEN"])
def test_credential_aliases(monkeypatch, env_name):
    monkeypatch.setenv(env_name, "k-123")

    settings = Settings(_env_file=None)

    assert settings.fal_configured is True
    assert settings.fal_key == "k-123"


def test_blank_credential_is_missing(monkeypatch):
    monkeypatch.setenv("FAL_KEY", "   ")
    assert Settings(_env_file=None).fal_configured is False


def test_default_model_from_env(monkeypatch):
    monkeypatch.setenv("FAL_NANO_BANANA_MODEL_ID", "fal-ai/nano-banana-pro/")
    monkeypatch.setenv("FAL_NANO_BANANA_SUBPATH", "/edit")

    assert Settings(_env_file=None).default_model == "fal-ai/nano-banana-pro/edit"


def test_empty_subpath_uses_bare_model_id(monkeypatch):
    monkeypatch.setenv("FAL_NANO_BANANA_SUBPATH", "")

    assert Settings(_env_file=None).default_model == "fal-ai/gemini-25-flash-image"


def test_supported_models_from_json_env(monkeypatch):
    monkeypatch.setenv("FAL_SUPPORTED_MODELS", '["fal-ai/a/edit", " fal-ai/b/edit "]')

    assert Settings(_env_file=None).fal_supported_models == ["fal-ai/a/edit", "fal-ai/b/edit"]


def test_empty_allowlist_rejected():
    with pytest.raises(ValidationError):
        Settings(fal_supported_models=[" "], _env_file=None)


def test_poll_interval_bounds(monkeypatch):
    monkeypatch.setenv("IMAGE_JOB_POLL_INTERVAL_MS", "10")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_credential_falls_through_to_next_alias(monkeypatch, blank):
    monkeypatch.setenv("FAL_KEY", blank)
    monkeypatch.setenv("FAL_API_KEY", "real-key")
    monkeypatch.setenv("FAL_TOKEN", "token-key")

    settings = Settings(_env_file=None)

    assert settings.fal_configured is True
    assert settings.fal_key == "real-key"


def test_credential_order(monkeypatch):
    monkeypatch.setenv("FAL_KEY", "primary")
    monkeypatch.setenv("FAL_API_KEY", "secondary")

    assert Settings(_env_file=None).fal_key == "primary"


def test_credential_not_in_repr_or_dump(monkeypatch):
    monkeypatch.setenv("FAL_API_KEY", "real-key")

    settings = Settings(_env_file=None)

    assert "real-key" not in repr(settings)
    assert "fal_api_key" not in settings.model_dump()
