"""
Image job engine shared by every entry point.

Both the client-driven submit/poll API and the synchronous wait path (HTTP and
agent tool) go through `ImageJobService`, so model validation, state mapping,
error kinds and image shapes cannot drift between call sites.

Every call is one-shot: no sleeping, no retries. Validation and configuration
checks run before any provider call.
"""
import math
import time
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from app.core.config import Settings, get_settings
from app.core.logging import get_safe_logger
from app.core.metrics import get_metrics_collector
from app.schemas.image_job import (
    PROVIDER_STATUS_MAP,
    ImageDescriptor,
    JobHandle,
    JobRequest,
    JobState,
    JobStatus,
    OutputFormat,
    PendingOutcome,
    PollOutcome,
    TerminalOutcome,
)
from app.services.exceptions import (
    ConfigurationError,
    ImageJobError,
    InvalidImageReferenceError,
    InvalidOutputFormatError,
    InvalidRequestIdError,
    MissingImageReferenceError,
    MissingPromptError,
    MissingRequestIdError,
    PollFailedError,
    SubmitFailedError,
)
from app.services.fal_queue_client import FalQueueClient, QueueProvider
from app.services.model_allowlist import resolve_model
from app.services.result_normalizer import classify_result, normalize_result

logger = get_safe_logger(__name__)

MIN_IMAGES = 1
MAX_IMAGES = 4
ALLOWED_IMAGE_SCHEMES = ("http", "https", "data")
# Request ids are one path segment; these would let a handle reach another app.
UNSAFE_REQUEST_ID_CHARS = ("/", "\\", "?", "#")


def clamp_num_images(value: Any) -> int:
    """
    Coerce a requested image count into [1, 4]. Never rejects.

    Non-numeric and non-finite values count as 1; fractions are floored.
    """
    try:
        raw = float(value)
    except (TypeError, ValueError):
        raw = 1.0
    if not math.isfinite(raw):
        raw = 1.0
    return min(max(math.floor(raw), MIN_IMAGES), MAX_IMAGES)


def resolve_image_urls(image_url: Optional[str], image_urls: Optional[Sequence[str]]) -> List[str]:
    """`image_urls` wins when non-empty; otherwise fall back to the single `image_url`."""
    if image_urls:
        urls = [u.strip() for u in image_urls if isinstance(u, str) and u.strip()]
    elif isinstance(image_url, str) and image_url.strip():
        urls = [image_url.strip()]
    else:
        urls = []

    if not urls:
        raise MissingImageReferenceError()

    for index, url in enumerate(urls):
        if urlparse(url).scheme.lower() not in ALLOWED_IMAGE_SCHEMES:
            raise InvalidImageReferenceError(index)
    return urls


def resolve_output_format(value: Optional[str]) -> OutputFormat:
    if value is None or not str(value).strip():
        return OutputFormat.PNG
    try:
        return OutputFormat(str(value).strip().lower())
    except ValueError:
        raise InvalidOutputFormatError([f.value for f in OutputFormat])


def _read_queue_position(payload: Dict[str, Any]) -> Optional[int]:
    position = payload.get("queue_position")
    if isinstance(position, bool) or not isinstance(position, (int, float)):
        return None
    if position < 0:
        return None
    return int(position)


class ImageJobService:
    """
    Submit / poll / result engine over a queue provider.

    The service holds only read-only configuration; concurrent jobs share no
    mutable state.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[QueueProvider] = None,
    ):
        self._settings = settings or get_settings()
        self._provider = provider

    @property
    def settings(self) -> Settings:
        return self._settings

    def _require_provider(self) -> QueueProvider:
        """Fail before any call when the credential is absent."""
        if not self._settings.fal_configured:
            raise ConfigurationError()
        if self._provider is None:
            return FalQueueClient.from_settings(self._settings)
        return self._provider

    # === Validation (no network) ===

    def prepare(
        self,
        prompt: Optional[str],
        model: Optional[str] = None,
        image_url: Optional[str] = None,
        image_urls: Optional[Sequence[str]] = None,
        num_images: Any = None,
        output_format: Optional[str] = None,
    ) -> JobRequest:
        """
        Build a normalized submission.

        Raises:
            ConfigurationError: credential absent
            ImageJobValidationError: unsupported model, missing prompt or image refs,
                bad image URL or output format
        """
        self._require_provider()
        model_id = resolve_model(model, self._settings)

        prompt = prompt.strip() if isinstance(prompt, str) else ""
        if not prompt:
            raise MissingPromptError()

        urls = resolve_image_urls(image_url, image_urls)

        return JobRequest(
            model_id=model_id,
            prompt=prompt,
            image_urls=tuple(urls),
            num_images=clamp_num_images(num_images),
            output_format=resolve_output_format(output_format),
        )

    def resolve_handle(self, request_id: Optional[str], model: Optional[str] = None) -> JobHandle:
        """Validate a caller-held handle before polling it."""
        self._require_provider()
        request_id = request_id.strip() if isinstance(request_id, str) else ""
        if not request_id:
            raise MissingRequestIdError()
        if any(c in request_id for c in UNSAFE_REQUEST_ID_CHARS) or request_id.strip(".") == "":
            raise InvalidRequestIdError()
        return JobHandle(request_id=request_id, model_id=resolve_model(model, self._settings))

    # === Provider calls (one each) ===

    async def submit(self, request: JobRequest) -> JobHandle:
        """Issue exactly one queued submit. Raises SubmitFailedError."""
        provider = self._require_provider()
        start_time = time.perf_counter()
        try:
            body = await provider.submit(request.model_id, request.to_provider_input())
            request_id = body.get("request_id")
            if not isinstance(request_id, str) or not request_id.strip():
                raise SubmitFailedError("Provider did not return a request id")
        except ImageJobError as e:
            self._record("submit", start_time, e)
            logger.error("Job submit failed", error_code=e.error_code.value, model=request.model_id)
            raise

        self._record("submit", start_time)
        handle = JobHandle(request_id=request_id.strip(), model_id=request.model_id)
        logger.info(
            "Job submitted",
            request_id=handle.request_id,
            model=handle.model_id,
            num_images=request.num_images,
            output_format=request.output_format.value,
        )
        return handle

    async def poll_status(self, handle: JobHandle) -> JobStatus:
        """One status query mapped onto the canonical state. Raises PollFailedError."""
        provider = self._require_provider()
        start_time = time.perf_counter()
        try:
            body = await provider.status(handle.model_id, handle.request_id)
            raw_status = body.get("status")
            state = PROVIDER_STATUS_MAP.get(raw_status) if isinstance(raw_status, str) else None
            if state is None:
                raise PollFailedError(f"Unrecognized provider status: {raw_status!r}")
        except ImageJobError as e:
            self._record("status", start_time, e)
            logger.error("Job status failed", error_code=e.error_code.value, request_id=handle.request_id)
            raise

        self._record("status", start_time)
        queue_position = _read_queue_position(body) if state == JobState.QUEUED else None
        error = body.get("error") if isinstance(body.get("error"), str) else None
        logger.debug(
            "Job status",
            request_id=handle.request_id,
            status=state.value,
            queue_position=queue_position,
        )
        return JobStatus(state=state, queue_position=queue_position, error=error)

    async def fetch_result(self, handle: JobHandle) -> List[ImageDescriptor]:
        """Fetch and normalize outputs of a completed job. Raises ResultFetchFailedError."""
        provider = self._require_provider()
        start_time = time.perf_counter()
        try:
            payload = await provider.result(handle.model_id, handle.request_id)
        except ImageJobError as e:
            self._record("result", start_time, e)
            logger.error("Job result fetch failed", error_code=e.error_code.value, request_id=handle.request_id)
            raise

        self._record("result", start_time)
        images = normalize_result(payload)
        logger.info(
            "Job result fetched",
            request_id=handle.request_id,
            shape=classify_result(payload).value,
            image_count=len(images),
        )
        return images

    async def check(self, handle: JobHandle) -> PollOutcome:
        """
        Poll once; on completion fetch the result.

        The result call is only made after `completed` has been observed.
        """
        status = await self.poll_status(handle)
        if not status.state.is_terminal:
            return PendingOutcome(handle=handle, state=status.state, queue_position=status.queue_position)

        if status.state == JobState.COMPLETED:
            images = await self.fetch_result(handle)
            return TerminalOutcome(handle=handle, state=status.state, images=tuple(images))

        return TerminalOutcome(handle=handle, state=status.state, error=status.error)

    def _record(self, stage: str, start_time: float, error: Optional[ImageJobError] = None) -> None:
        get_metrics_collector().record_call(
            stage,
            latency_ms=int((time.perf_counter() - start_time) * 1000),
            success=error is None,
            error_code=error.error_code.value if error else None,
        )
