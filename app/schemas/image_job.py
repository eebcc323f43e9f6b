"""
Image job domain types.

Handles and outcomes are ephemeral: created at submit, observed through polls
and discarded by the caller. Nothing here is persisted.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field


class JobState(str, Enum):
    """Canonical job lifecycle state."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


# Provider queue vocabulary -> canonical state (one to one)
PROVIDER_STATUS_MAP = {
    "IN_QUEUE": JobState.QUEUED,
    "IN_PROGRESS": JobState.RUNNING,
    "COMPLETED": JobState.COMPLETED,
    "FAILED": JobState.FAILED,
    "CANCELLED": JobState.CANCELLED,
}


class OutputFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"


class WaitStatus(str, Enum):
    """Outcome of a bounded wait."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class ImageDescriptor(BaseModel):
    """A generated image as reported by the provider."""
    url: str = Field(..., description="Public URL of the generated image")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    file_size_bytes: Optional[int] = Field(default=None, alias="fileSizeBytes")
    width: Optional[int] = None
    height: Optional[int] = None

    class Config:
        populate_by_name = True


@dataclass(frozen=True)
class JobRequest:
    """A validated, normalized submission. Built only by `ImageJobService.prepare`."""
    model_id: str
    prompt: str
    image_urls: Tuple[str, ...]
    num_images: int = 1
    output_format: OutputFormat = OutputFormat.PNG

    def to_provider_input(self) -> dict:
        # Queued mode only; the provider must never block the submit call.
        return {
            "prompt": self.prompt,
            "image_urls": list(self.image_urls),
            "num_images": self.num_images,
            "output_format": self.output_format.value,
            "sync_mode": False,
        }


@dataclass(frozen=True)
class JobHandle:
    request_id: str
    model_id: str


@dataclass(frozen=True)
class JobStatus:
    """One status observation."""
    state: JobState
    queue_position: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class PendingOutcome:
    handle: JobHandle
    state: JobState
    queue_position: Optional[int] = None


@dataclass(frozen=True)
class TerminalOutcome:
    handle: JobHandle
    state: JobState
    images: Tuple[ImageDescriptor, ...] = ()
    error: Optional[str] = None


PollOutcome = Union[PendingOutcome, TerminalOutcome]


TIMED_OUT_MESSAGE = (
    "Timeout waiting for result. Job is still processing. "
    "Use requestId to check status later."
)


@dataclass
class WaitOutcome:
    """Result of a bounded wait: terminal, or timed out with the handle kept."""
    status: WaitStatus
    handle: Optional[JobHandle] = None
    images: List[ImageDescriptor] = field(default_factory=list)
    error: Optional[str] = None
    attempts: int = 0
    elapsed_ms: int = 0

    @property
    def message(self) -> Optional[str]:
        if self.status == WaitStatus.TIMED_OUT:
            return TIMED_OUT_MESSAGE
        return None

    @property
    def request_id(self) -> Optional[str]:
        return self.handle.request_id if self.handle else None
