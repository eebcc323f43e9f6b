"""
Application configuration from environment variables.
Secret-safe: the provider credential is never part of defaults or logs.
"""
from functools import lru_cache
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


DEFAULT_SUPPORTED_MODELS = [
    "fal-ai/gemini-25-flash-image/edit",
    "fal-ai/nano-banana-pro/edit",
    "fal-ai/bytedance/seedream/v4.5/edit",
]

CREDENTIAL_FIELDS = ("fal_key", "fal_api_key", "fal_token")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_env: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Service environment"
    )

    # Provider credential (first non-blank wins: FAL_KEY, FAL_API_KEY, FAL_TOKEN)
    fal_key: Optional[str] = Field(
        default=None,
        repr=False,
        description="Credential for the fal.ai queue API"
    )
    fal_api_key: Optional[str] = Field(default=None, repr=False, exclude=True)
    fal_token: Optional[str] = Field(default=None, repr=False, exclude=True)

    # Model selection
    fal_nano_banana_model_id: str = Field(
        default="fal-ai/gemini-25-flash-image",
        description="Provider application id of the default edit model"
    )
    fal_nano_banana_subpath: str = Field(
        default="edit",
        description="Sub-path appended to the default model id"
    )
    fal_supported_models: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_MODELS),
        description="Allowlist of model ids callers may request (JSON list in env)"
    )

    # Provider transport
    fal_queue_base_url: str = Field(
        default="https://queue.fal.run",
        description="Base URL of the provider queue API"
    )
    fal_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=120000,
        description="Timeout for a single provider call in milliseconds"
    )

    # Bounded wait defaults
    image_job_poll_interval_ms: int = Field(
        default=2000,
        ge=100,
        le=60000,
        description="Sleep between status polls in the synchronous wait path"
    )
    image_job_max_wait_ms: int = Field(
        default=120000,
        ge=0,
        le=600000,
        description="Wall-clock ceiling for the synchronous wait path"
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    @model_validator(mode="before")
    @classmethod
    def first_non_blank_key(cls, data: Any) -> Any:
        """Pick the first credential variable that is set and non-blank."""
        if not isinstance(data, dict):
            return data
        data["fal_key"] = next(
            (
                str(data[name]).strip()
                for name in CREDENTIAL_FIELDS
                if data.get(name) is not None and str(data[name]).strip()
            ),
            None,
        )
        return data

    @field_validator("fal_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty or whitespace-only credential as absent."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("fal_supported_models", mode="after")
    @classmethod
    def strip_supported_models(cls, v: List[str]) -> List[str]:
        models = [m.strip() for m in v if m and m.strip()]
        if not models:
            raise ValueError("FAL_SUPPORTED_MODELS must contain at least one model id")
        return models

    @property
    def default_model(self) -> str:
        """Default model id: `<model_id>/<subpath>`."""
        model_id = self.fal_nano_banana_model_id.strip().rstrip("/")
        subpath = self.fal_nano_banana_subpath.strip().strip("/")
        return f"{model_id}/{subpath}" if subpath else model_id

    @property
    def fal_configured(self) -> bool:
        return bool(self.fal_key)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
