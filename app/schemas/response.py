"""
Response schemas for the image job API.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.image_job import (
    ImageDescriptor,
    JobHandle,
    JobState,
    PendingOutcome,
    PollOutcome,
    WaitOutcome,
    WaitStatus,
)


class SubmitJobResponse(BaseModel):
    """Handle returned by submit; the caller owns it for the job's lifetime."""
    request_id: str = Field(..., alias="requestId")
    model: str

    class Config:
        populate_by_name = True


class JobStatusResponse(BaseModel):
    """
    Result of one poll.
    Pending jobs carry queuePosition, completed jobs carry images,
    failed/cancelled jobs may carry error.
    """
    request_id: str = Field(..., alias="requestId")
    model: str
    status: JobState
    queue_position: Optional[int] = Field(default=None, alias="queuePosition")
    images: Optional[List[ImageDescriptor]] = None
    error: Optional[str] = None

    class Config:
        populate_by_name = True

    @classmethod
    def from_outcome(cls, handle: JobHandle, outcome: PollOutcome) -> "JobStatusResponse":
        """
        Only the fields that apply to the state are set, so callers dumping
        with `exclude_unset` get the same document on every entry point.
        """
        response = cls(request_id=handle.request_id, model=handle.model_id, status=outcome.state)
        if isinstance(outcome, PendingOutcome):
            response.queue_position = outcome.queue_position
        elif outcome.state == JobState.COMPLETED:
            response.images = list(outcome.images)
        elif outcome.error is not None:
            response.error = outcome.error
        return response


class WaitJobResponse(BaseModel):
    """Terminal or timed-out outcome of the synchronous wait."""
    status: WaitStatus
    request_id: Optional[str] = Field(default=None, alias="requestId")
    model: Optional[str] = None
    images: List[ImageDescriptor] = Field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None
    attempts: int = 0
    elapsed_ms: int = Field(default=0, alias="elapsedMs")

    class Config:
        populate_by_name = True

    @classmethod
    def from_outcome(cls, outcome: WaitOutcome, model: Optional[str] = None) -> "WaitJobResponse":
        """`model` is used when submit failed and there is no handle."""
        return cls(
            status=outcome.status,
            request_id=outcome.request_id,
            model=outcome.handle.model_id if outcome.handle else model,
            images=outcome.images,
            error=outcome.error,
            message=outcome.message,
            attempts=outcome.attempts,
            elapsed_ms=outcome.elapsed_ms,
        )


class ErrorDetail(BaseModel):
    """Error details for failed requests."""
    code: Literal[
        "BAD_REQUEST",
        "INVALID_MODEL",
        "NOT_FOUND",
        "PROVIDER_NOT_CONFIGURED",
        "SUBMIT_FAILED",
        "POLL_FAILED",
        "RESULT_FETCH_FAILED",
        "INTERNAL_ERROR",
    ] = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(..., description="Whether the client should retry")
    allowed_models: Optional[List[str]] = Field(default=None, alias="allowedModels")

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Error response envelope."""
    success: Literal[False] = False
    error: ErrorDetail
