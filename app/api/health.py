"""
Health check and metrics endpoints.
Secret-safe: reports whether the provider credential is set, never its value.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.core.metrics import get_metrics_collector
from app.services.model_allowlist import get_supported_models

router = APIRouter(tags=["health"])

SERVICE_NAME = "image-job-service"
SERVICE_VERSION = "0.1.0"


# === Response Models ===

class HealthResponse(BaseModel):
    """Basic health check response."""
    ok: bool


class ProviderStatus(BaseModel):
    """Provider configuration as seen by this process."""
    configured: bool
    model: str
    supported_models: List[str] = Field(alias="supportedModels")

    class Config:
        populate_by_name = True


class DetailedHealthResponse(BaseModel):
    """Detailed health response for /v1/health."""
    ok: bool
    service: str = Field(default=SERVICE_NAME)
    version: str
    provider: ProviderStatus


class MetricsResponse(BaseModel):
    """Metrics response."""
    uptime_seconds: int = Field(alias="uptimeSeconds")
    stages: Dict[str, Any]
    error_codes: Dict[str, int] = Field(alias="errorCodes")
    wait_outcomes: Dict[str, int] = Field(alias="waitOutcomes")

    class Config:
        populate_by_name = True


def get_provider_status() -> ProviderStatus:
    settings = get_settings()
    return ProviderStatus(
        configured=settings.fal_configured,
        model=settings.default_model,
        supported_models=get_supported_models(settings),
    )


# === Endpoints ===

@router.get(
    "/healthz",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Returns 200 if the service is alive"
)
async def health_check() -> HealthResponse:
    return HealthResponse(ok=True)


@router.get(
    "/v1/health",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
    description="Returns service info and provider configuration status"
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    ok is false when the provider credential is missing, since every
    image job call would fail with PROVIDER_NOT_CONFIGURED.
    """
    provider = get_provider_status()
    return DetailedHealthResponse(
        ok=provider.configured,
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        provider=provider,
    )


@router.get(
    "/v1/metrics",
    response_model=MetricsResponse,
    status_code=status.HTTP_200_OK,
    summary="Service metrics",
    description="Returns aggregated provider-call and wait-outcome counters"
)
async def get_metrics() -> MetricsResponse:
    snapshot = get_metrics_collector().get_snapshot()
    return MetricsResponse(
        uptime_seconds=snapshot["uptime_seconds"],
        stages=snapshot["stages"],
        error_codes=snapshot["error_codes"],
        wait_outcomes=snapshot["wait_outcomes"],
    )
