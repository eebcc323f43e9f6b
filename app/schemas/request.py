"""
Request schemas for the image job API.

Field presence and content rules (prompt, image references, model, output
format) are enforced by `ImageJobService.prepare` so that HTTP and agent-tool
callers see the same error messages. Only JSON shape is checked here.
"""
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field


class SubmitJobRequest(BaseModel):
    """Body of `POST /v1/image-jobs`."""

    model: Optional[str] = Field(
        default=None,
        description="Model id from the allowlist; defaults to the configured model"
    )
    prompt: Optional[str] = Field(default=None, description="Edit instruction")
    image_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("image_url", "imageUrl"),
        description="Single reference image URL"
    )
    image_urls: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("image_urls", "imageUrls"),
        description="Reference image URLs; takes precedence over image_url when non-empty"
    )
    num_images: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("num_images", "numImages"),
        description="Requested output count, coerced into [1, 4]"
    )
    output_format: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("output_format", "outputFormat"),
        description="png, jpeg or webp (default png)"
    )

    class Config:
        populate_by_name = True

    def submit_fields(self) -> dict:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "image_url": self.image_url,
            "image_urls": self.image_urls,
            "num_images": self.num_images,
            "output_format": self.output_format,
        }


class WaitJobRequest(SubmitJobRequest):
    """Body of `POST /v1/image-jobs/wait`."""

    max_wait_ms: Optional[int] = Field(
        default=None,
        ge=0,
        le=600000,
        validation_alias=AliasChoices("max_wait_ms", "maxWaitMs"),
        description="Wall-clock ceiling in ms (defaults to IMAGE_JOB_MAX_WAIT_MS)"
    )
    poll_interval_ms: Optional[int] = Field(
        default=None,
        ge=100,
        le=60000,
        validation_alias=AliasChoices("poll_interval_ms", "pollIntervalMs"),
        description="Sleep between polls in ms (defaults to IMAGE_JOB_POLL_INTERVAL_MS)"
    )
