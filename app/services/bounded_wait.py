"""
Bounded-wait orchestration: submit once, then poll until a terminal state or
the wall-clock ceiling.

    submitting -> polling -> completed | failed | cancelled | timed_out

Timing out is not a failure: polling stops, the provider job keeps running and
the caller may poll again later with the returned handle. The only suspension
point is the sleep between polls; state changes during a sleep are observed at
the next poll.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

from app.core.logging import get_safe_logger
from app.core.metrics import get_metrics_collector
from app.schemas.image_job import (
    JobRequest,
    JobState,
    TerminalOutcome,
    WaitOutcome,
    WaitStatus,
)
from app.services.exceptions import ProviderTransportError
from app.services.image_jobs import ImageJobService

logger = get_safe_logger(__name__)

_TERMINAL_TO_WAIT = {
    JobState.COMPLETED: WaitStatus.COMPLETED,
    JobState.FAILED: WaitStatus.FAILED,
    JobState.CANCELLED: WaitStatus.CANCELLED,
}


class BoundedWaitOrchestrator:
    """
    Runs Submit -> (Poll, sleep)* -> Result with a wall-clock ceiling.

    `sleep` and `clock` are injectable so the loop can be driven without real time.
    """

    def __init__(
        self,
        service: ImageJobService,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._service = service
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        request: JobRequest,
        max_wait_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> WaitOutcome:
        settings = self._service.settings
        if max_wait_ms is None:
            max_wait_ms = settings.image_job_max_wait_ms
        if poll_interval_ms is None:
            poll_interval_ms = settings.image_job_poll_interval_ms

        try:
            handle = await self._service.submit(request)
        except ProviderTransportError as e:
            # No handle, nothing to poll.
            return self._finish(WaitOutcome(status=WaitStatus.FAILED, error=e.message))

        start = self._clock()
        attempts = 0

        def elapsed_ms() -> int:
            return int((self._clock() - start) * 1000)

        while elapsed_ms() < max_wait_ms:
            try:
                outcome = await self._service.check(handle)
            except ProviderTransportError as e:
                return self._finish(WaitOutcome(
                    status=WaitStatus.FAILED,
                    handle=handle,
                    error=e.message,
                    attempts=attempts + 1,
                    elapsed_ms=elapsed_ms(),
                ))
            attempts += 1

            if isinstance(outcome, TerminalOutcome):
                return self._finish(WaitOutcome(
                    status=_TERMINAL_TO_WAIT[outcome.state],
                    handle=handle,
                    images=list(outcome.images),
                    error=outcome.error,
                    attempts=attempts,
                    elapsed_ms=elapsed_ms(),
                ))

            await self._sleep(poll_interval_ms / 1000.0)

        return self._finish(WaitOutcome(
            status=WaitStatus.TIMED_OUT,
            handle=handle,
            attempts=attempts,
            elapsed_ms=elapsed_ms(),
        ))

    def _finish(self, outcome: WaitOutcome) -> WaitOutcome:
        get_metrics_collector().record_wait_outcome(outcome.status.value)
        logger.info(
            "Bounded wait finished",
            request_id=outcome.request_id,
            status=outcome.status.value,
            attempts=outcome.attempts,
            elapsed_ms=outcome.elapsed_ms,
        )
        return outcome


async def submit_and_wait(
    service: ImageJobService,
    request: JobRequest,
    max_wait_ms: Optional[int] = None,
    poll_interval_ms: Optional[int] = None,
) -> WaitOutcome:
    """Convenience wrapper used by the synchronous entry points."""
    return await BoundedWaitOrchestrator(service).run(
        request,
        max_wait_ms=max_wait_ms,
        poll_interval_ms=poll_interval_ms,
    )
