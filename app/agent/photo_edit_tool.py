#!/usr/bin/env python3
"""
Photo edit agent tool - command-line entry point for non-interactive callers.

Shares the engine used by the HTTP API, so states, error codes and image
shapes are identical on both paths.

Usage:
    # Submit and wait (bounded); prints the terminal or timed_out outcome
    image-jobs wait --prompt "staged modern living room" --image-url https://x/1.jpg

    # Submit only; prints {requestId, model}
    image-jobs submit --prompt "..." --image-url https://x/1.jpg --num-images 2

    # Poll once with a handle from submit or a timed_out wait
    image-jobs status REQUEST_ID [--model MODEL]

Environment:
    FAL_KEY (or FAL_API_KEY / FAL_TOKEN) - provider credential (required)
    FAL_NANO_BANANA_MODEL_ID / FAL_NANO_BANANA_SUBPATH - default model

Exit codes:
    0 - Success, including timed_out (the job is still processing)
    1 - Job failed or was cancelled, or the provider call failed
    2 - Invalid input or missing configuration
"""
import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from app.core.logging import setup_logging
from app.schemas.image_job import JobHandle, JobState, PendingOutcome, PollOutcome, WaitOutcome, WaitStatus
from app.schemas.response import JobStatusResponse, SubmitJobResponse, WaitJobResponse
from app.services.bounded_wait import BoundedWaitOrchestrator
from app.services.exceptions import (
    ConfigurationError,
    ImageJobError,
    ImageJobValidationError,
    InvalidModelError,
)
from app.services.image_jobs import ImageJobService

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_INVALID = 2


def _dump(document: Dict[str, Any]) -> None:
    print(json.dumps(document, indent=2))


def status_to_dict(handle: JobHandle, outcome: PollOutcome) -> Dict[str, Any]:
    """Same document as `GET /v1/image-jobs/{request_id}`."""
    return JobStatusResponse.from_outcome(handle, outcome).model_dump(
        mode="json", by_alias=True, exclude_unset=True
    )


def wait_outcome_to_dict(outcome: WaitOutcome, model: Optional[str] = None) -> Dict[str, Any]:
    """Same document as `POST /v1/image-jobs/wait`."""
    return WaitJobResponse.from_outcome(outcome, model=model).model_dump(mode="json", by_alias=True)


def error_to_dict(exc: ImageJobError) -> Dict[str, Any]:
    error: Dict[str, Any] = {
        "code": exc.error_code.value,
        "message": exc.message,
        "retryable": exc.retryable,
    }
    if isinstance(exc, InvalidModelError):
        error["allowedModels"] = exc.allowed_models
    return {"success": False, "error": error}


def _add_submit_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--prompt", required=True, help="Edit instruction")
    parser.add_argument(
        "--image-url",
        dest="image_urls",
        action="append",
        default=[],
        help="Reference image URL (repeat for several)",
    )
    parser.add_argument("--model", default=None, help="Model id from the allowlist")
    parser.add_argument(
        "--num-images",
        default=None,
        help="Number of outputs; coerced into [1, 4]",
    )
    parser.add_argument(
        "--output-format",
        default=None,
        help="png (default), jpeg or webp",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-jobs",
        description="Submit, poll and wait on queued image edit jobs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Submit a job and print its handle")
    _add_submit_arguments(submit)

    wait = subparsers.add_parser("wait", help="Submit a job and wait for the outcome")
    _add_submit_arguments(wait)
    wait.add_argument("--max-wait-ms", type=int, default=None, help="Wall-clock ceiling")
    wait.add_argument("--poll-interval-ms", type=int, default=None, help="Sleep between polls")

    status = subparsers.add_parser("status", help="Poll a job once")
    status.add_argument("request_id", help="Handle returned by submit or a timed_out wait")
    status.add_argument("--model", default=None, help="Model the job was submitted to")

    return parser


async def _run(args: argparse.Namespace, service: ImageJobService) -> int:
    if args.command == "status":
        handle = service.resolve_handle(args.request_id, args.model)
        outcome = await service.check(handle)
        _dump(status_to_dict(handle, outcome))
        if isinstance(outcome, PendingOutcome) or outcome.state == JobState.COMPLETED:
            return EXIT_OK
        return EXIT_JOB_FAILED

    request = service.prepare(
        prompt=args.prompt,
        model=args.model,
        image_urls=args.image_urls,
        num_images=args.num_images,
        output_format=args.output_format,
    )

    if args.command == "submit":
        handle = await service.submit(request)
        _dump(SubmitJobResponse(request_id=handle.request_id, model=handle.model_id).model_dump(by_alias=True))
        return EXIT_OK

    outcome = await BoundedWaitOrchestrator(service).run(
        request,
        max_wait_ms=args.max_wait_ms,
        poll_interval_ms=args.poll_interval_ms,
    )
    _dump(wait_outcome_to_dict(outcome, model=request.model_id))
    if outcome.status in (WaitStatus.COMPLETED, WaitStatus.TIMED_OUT):
        return EXIT_OK
    return EXIT_JOB_FAILED


def main(argv: Optional[List[str]] = None, service: Optional[ImageJobService] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    service = service or ImageJobService()

    try:
        return asyncio.run(_run(args, service))
    except (ImageJobValidationError, ConfigurationError) as e:
        _dump(error_to_dict(e))
        return EXIT_INVALID
    except ImageJobError as e:
        _dump(error_to_dict(e))
        return EXIT_JOB_FAILED


if __name__ == "__main__":
    sys.exit(main())
