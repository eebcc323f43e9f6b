"""
Image job endpoints.

Two entry points over the same engine:
- client-driven: POST /v1/image-jobs then GET /v1/image-jobs/{request_id}
  on the caller's own cadence (never sleeps server-side);
- synchronous: POST /v1/image-jobs/wait runs the bounded wait and returns a
  terminal or timed-out outcome.

Errors raised by the engine are rendered by the ImageJobError handler in
`app.main`.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.schemas.request import SubmitJobRequest, WaitJobRequest
from app.schemas.response import JobStatusResponse, SubmitJobResponse, WaitJobResponse
from app.services.bounded_wait import BoundedWaitOrchestrator
from app.services.image_jobs import ImageJobService

router = APIRouter(prefix="/v1", tags=["image-jobs"])


def get_image_job_service() -> ImageJobService:
    """Dependency hook; tests override it with a fake provider."""
    return ImageJobService()


@router.post(
    "/image-jobs",
    response_model=SubmitJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit an image edit job",
    responses={
        202: {"description": "Job accepted by the provider queue"},
        400: {"description": "Missing prompt/images or unsupported model"},
        500: {"description": "Provider unreachable or not configured"},
    }
)
async def submit_image_job(
    body: SubmitJobRequest,
    service: ImageJobService = Depends(get_image_job_service),
) -> SubmitJobResponse:
    request = service.prepare(**body.submit_fields())
    handle = await service.submit(request)
    return SubmitJobResponse(request_id=handle.request_id, model=handle.model_id)


@router.get(
    "/image-jobs/{request_id}",
    response_model=JobStatusResponse,
    response_model_exclude_unset=True,
    summary="Poll an image edit job",
)
async def get_image_job_status(
    request_id: str,
    model: Optional[str] = Query(default=None, description="Model the job was submitted to"),
    service: ImageJobService = Depends(get_image_job_service),
) -> JobStatusResponse:
    """
    One status query. Completed jobs include their images; pending jobs
    include the queue position (null once running).
    """
    handle = service.resolve_handle(request_id, model)
    outcome = await service.check(handle)
    return JobStatusResponse.from_outcome(handle, outcome)


@router.post(
    "/image-jobs/wait",
    response_model=WaitJobResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit an image edit job and wait for it",
    description=(
        "Runs the bounded wait. A timed_out status is not an error: the job is "
        "still processing and can be polled with the returned requestId."
    ),
)
async def submit_and_wait_image_job(
    body: WaitJobRequest,
    service: ImageJobService = Depends(get_image_job_service),
) -> WaitJobResponse:
    request = service.prepare(**body.submit_fields())
    outcome = await BoundedWaitOrchestrator(service).run(
        request,
        max_wait_ms=body.max_wait_ms,
        poll_interval_ms=body.poll_interval_ms,
    )
    return WaitJobResponse.from_outcome(outcome, model=request.model_id)
