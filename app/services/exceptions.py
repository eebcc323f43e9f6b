"""
Error taxonomy for image job orchestration.

Configuration and validation errors are raised before any provider call and
have no side effects. Transport errors carry the provider's message string and
are never retried here; retry policy belongs to the caller. A timed-out wait is
an outcome, not an exception.
"""
from enum import Enum
from typing import Optional, Sequence


class ImageJobErrorCode(str, Enum):
    """Error codes returned to clients and written to logs."""
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
    BAD_REQUEST = "BAD_REQUEST"
    INVALID_MODEL = "INVALID_MODEL"
    SUBMIT_FAILED = "SUBMIT_FAILED"
    POLL_FAILED = "POLL_FAILED"
    RESULT_FETCH_FAILED = "RESULT_FETCH_FAILED"


class ImageJobError(Exception):
    """
    Base exception for image job errors.

    Attributes:
        error_code: Stable code for logging and response bodies
        status_code: HTTP status code to return
        retryable: Whether the client may retry the same call
        message: Human-readable message
    """

    def __init__(
        self,
        error_code: ImageJobErrorCode,
        message: str,
        status_code: int = 500,
        retryable: bool = False
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class ConfigurationError(ImageJobError):
    """Raised when the provider credential is absent."""

    def __init__(
        self,
        message: str = "FAL key not configured. Set FAL_KEY (or FAL_API_KEY) in your environment."
    ):
        super().__init__(
            error_code=ImageJobErrorCode.PROVIDER_NOT_CONFIGURED,
            message=message,
            status_code=500,
            retryable=False
        )


# === Validation errors (400, raised before any network call) ===

class ImageJobValidationError(ImageJobError):
    """Base class for rejected caller input."""

    def __init__(
        self,
        message: str,
        error_code: ImageJobErrorCode = ImageJobErrorCode.BAD_REQUEST
    ):
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=400,
            retryable=False
        )


class InvalidModelError(ImageJobValidationError):
    """Raised when the requested model is not on the allowlist."""

    def __init__(self, model: str, allowed_models: Sequence[str]):
        self.model = model
        self.allowed_models = list(allowed_models)
        super().__init__(
            f"Unsupported model. Allowed: {', '.join(self.allowed_models)}",
            error_code=ImageJobErrorCode.INVALID_MODEL
        )


class MissingPromptError(ImageJobValidationError):
    def __init__(self):
        super().__init__("prompt is required")


class MissingImageReferenceError(ImageJobValidationError):
    def __init__(self):
        super().__init__("image_url (or image_urls) is required")


class InvalidImageReferenceError(ImageJobValidationError):
    """Raised when an image reference is not an http(s) or data URL."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"image_urls[{index}] must be an http(s) or data URL")


class InvalidOutputFormatError(ImageJobValidationError):
    def __init__(self, allowed_formats: Sequence[str]):
        super().__init__(f"output_format must be one of: {', '.join(allowed_formats)}")


class MissingRequestIdError(ImageJobValidationError):
    def __init__(self):
        super().__init__("requestId is required")


class InvalidRequestIdError(ImageJobValidationError):
    """Raised when a request id could escape its model's queue path."""

    def __init__(self):
        super().__init__("requestId must not contain '/', '?', '#' or '..'")


# === Transport errors (500, zero internal retries) ===

class ProviderTransportError(ImageJobError):
    """Base class for provider call failures at any stage."""

    stage = "provider"

    def __init__(
        self,
        error_code: ImageJobErrorCode,
        message: str,
        upstream_status: Optional[int] = None
    ):
        self.upstream_status = upstream_status
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=500,
            retryable=True
        )


class SubmitFailedError(ProviderTransportError):
    stage = "submit"

    def __init__(self, message: str = "Unknown error submitting to provider", upstream_status: Optional[int] = None):
        super().__init__(ImageJobErrorCode.SUBMIT_FAILED, message, upstream_status)


class PollFailedError(ProviderTransportError):
    stage = "status"

    def __init__(self, message: str = "Unknown error checking provider status", upstream_status: Optional[int] = None):
        super().__init__(ImageJobErrorCode.POLL_FAILED, message, upstream_status)


class ResultFetchFailedError(ProviderTransportError):
    stage = "result"

    def __init__(self, message: str = "Unknown error fetching provider result", upstream_status: Optional[int] = None):
        super().__init__(ImageJobErrorCode.RESULT_FETCH_FAILED, message, upstream_status)
