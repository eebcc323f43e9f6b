"""
fal.ai queue API transport.

Three one-shot calls, no retries and no sleeping:
    submit  POST {base}/{model_id}
    status  GET  {base}/{owner}/{app}/requests/{request_id}/status
    result  GET  {base}/{owner}/{app}/requests/{request_id}

Secret-safe: NEVER log the credential, the prompt or image URLs.
"""
import time
from typing import Any, Dict, Optional, Protocol, Type
from urllib.parse import quote

import httpx

from app.core.config import Settings, get_settings
from app.core.logging import get_safe_logger
from app.services.exceptions import (
    PollFailedError,
    ProviderTransportError,
    ResultFetchFailedError,
    SubmitFailedError,
)

logger = get_safe_logger(__name__)


class QueueProvider(Protocol):
    """What the orchestrator needs from the provider."""

    async def submit(self, model_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def status(self, model_id: str, request_id: str) -> Dict[str, Any]:
        ...

    async def result(self, model_id: str, request_id: str) -> Dict[str, Any]:
        ...


def app_path(model_id: str) -> str:
    """
    Queue paths for status/result are keyed by `<owner>/<app>`, without the
    endpoint sub-path (`fal-ai/nano-banana-pro/edit` -> `fal-ai/nano-banana-pro`).
    """
    parts = [p for p in model_id.split("/") if p]
    return "/".join(parts[:2])


def _request_segment(request_id: str) -> str:
    """Encode a request id as a single path segment."""
    return quote(request_id, safe="")


def _error_message(response: httpx.Response) -> str:
    """Extract the provider's error message, falling back to the status code."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error") or body.get("message")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
        if isinstance(detail, list) and detail:
            first = detail[0]
            if isinstance(first, dict) and isinstance(first.get("msg"), str):
                return first["msg"]

    return f"Provider request failed with status {response.status_code}"


class FalQueueClient:
    """
    Stateless async client for the provider queue API.

    A fresh `httpx.AsyncClient` is opened per call, so concurrent jobs share
    no connection state.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://queue.fal.run",
        timeout_ms: int = 30000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_ms = timeout_ms
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "FalQueueClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.fal_key or "",
            base_url=settings.fal_queue_base_url,
            timeout_ms=settings.fal_timeout_ms,
            transport=transport,
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Key {self._api_key}",
            "Content-Type": "application/json",
        }

    async def submit(self, model_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}/{model_id.strip('/')}"
        return await self._request("POST", url, SubmitFailedError, json=payload)

    async def status(self, model_id: str, request_id: str) -> Dict[str, Any]:
        url = f"{self._base_url}/{app_path(model_id)}/requests/{_request_segment(request_id)}/status"
        return await self._request("GET", url, PollFailedError, params={"logs": "0"})

    async def result(self, model_id: str, request_id: str) -> Dict[str, Any]:
        url = f"{self._base_url}/{app_path(model_id)}/requests/{_request_segment(request_id)}"
        return await self._request("GET", url, ResultFetchFailedError)

    async def _request(
        self,
        method: str,
        url: str,
        error_cls: Type[ProviderTransportError],
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Issue one provider call and decode its JSON body.

        Raises:
            error_cls: on transport failure, timeout, HTTP >= 400 or a non-object body
        """
        start_time = time.perf_counter()
        timeout_s = self._timeout_ms / 1000.0

        try:
            async with httpx.AsyncClient(timeout=timeout_s, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._headers, **kwargs)
        except httpx.TimeoutException:
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning(
                "Provider call timed out",
                method=method,
                elapsed_ms=elapsed_ms,
                error_code=error_cls.__name__,
            )
            raise error_cls(f"Provider timeout after {elapsed_ms}ms")
        except httpx.HTTPError as e:
            logger.warning(
                "Provider unreachable",
                method=method,
                exception_class=type(e).__name__,
            )
            raise error_cls(f"Provider unreachable: {type(e).__name__}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if response.status_code >= 400:
            logger.warning(
                "Provider call rejected",
                method=method,
                status_code=response.status_code,
                latency_ms=latency_ms,
            )
            raise error_cls(_error_message(response), upstream_status=response.status_code)

        try:
            body = response.json()
        except ValueError:
            raise error_cls("Provider returned invalid JSON", upstream_status=response.status_code)

        if not isinstance(body, dict):
            raise error_cls("Provider returned an unexpected payload", upstream_status=response.status_code)

        logger.debug(
            "Provider call ok",
            method=method,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return body
