"""Client-side polling of remote media jobs.

The monitor only observes: it calls the injected status query, never anything
that changes the job. Errors raised by the query propagate unchanged.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from media_hub.core.models.job_models import (
    JobHandle,
    JobState,
    JobStatus,
    ProgressEvent,
    WaitOutcome,
    WaitResult,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0

StatusQuery = Callable[[JobHandle], JobStatus]


class CancellationToken:
    """Cooperative cancellation shared between a caller and a waiting monitor."""

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason="cancelled"):
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True when woken by cancel()."""
        return self._event.wait(seconds)


class RemoteJobMonitor:
    def __init__(
        self,
        query: StatusQuery,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleeper: Optional[Callable[[float], object]] = None,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.query = query
        self.interval = interval
        self.sleeper = sleeper
        self.clock = clock
        self.on_progress = on_progress

    def wait_for_completion(
        self,
        handle: JobHandle,
        interval: Optional[float] = None,
        cancellation: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> WaitResult:
        """Poll ``handle`` until the job reaches a terminal state.

        Returns a ``WaitResult`` with outcome ``Completed`` and the terminal
        snapshot, or outcome ``Cancelled`` when the token fires or ``timeout``
        seconds elapse first. Cancellation is checked before each query, so
        it takes effect within one interval.
        """
        interval = self.interval if interval is None else interval
        if interval < 0:
            raise ValueError("interval must be >= 0")
        deadline = self.clock() + timeout if timeout is not None else None

        polls = 0
        last: Optional[JobStatus] = None
        events: list[ProgressEvent] = []

        while True:
            reason = self._stop_reason(cancellation, deadline)
            if reason:
                logger.debug("Stopped waiting on %s after %d polls: %s", handle, polls, reason)
                return WaitResult(
                    handle=handle,
                    outcome=WaitOutcome.CANCELLED,
                    status=last,
                    polls=polls,
                    reason=reason,
                    events=events,
                )

            last = self.query(handle)
            polls += 1

            if last.is_terminal:
                logger.debug("Job %s reached %s after %d polls", handle, last.state.value, polls)
                return WaitResult(
                    handle=handle,
                    outcome=WaitOutcome.COMPLETED,
                    status=last,
                    polls=polls,
                    events=events,
                )

            if last.state is JobState.PROCESSING:
                event = ProgressEvent(handle=handle, status=last, poll=polls)
                events.append(event)
                if self.on_progress:
                    self.on_progress(event)

            self._sleep(self._next_delay(interval, deadline), cancellation)

    def _stop_reason(self, cancellation, deadline):
        if cancellation is not None and cancellation.cancelled:
            return cancellation.reason or "cancelled"
        if deadline is not None and self.clock() >= deadline:
            return "deadline exceeded"
        return None

    def _next_delay(self, interval, deadline):
        if deadline is None:
            return interval
        return max(0.0, min(interval, deadline - self.clock()))

    def _sleep(self, seconds, cancellation):
        if self.sleeper is not None:
            self.sleeper(seconds)
        elif cancellation is not None:
            cancellation.sleep(seconds)
        else:
            time.sleep(seconds)
