from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class JobState(str, Enum):
    QUEUED = "Queued"
    PROCESSING = "Processing"
    FINISHED = "Finished"
    ERROR = "Error"
    CANCELED = "Canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({JobState.FINISHED, JobState.ERROR, JobState.CANCELED})


@dataclass(frozen=True)
class JobHandle:
    """Identifier issued by the media service for a submitted job."""

    job_id: str
    transform_name: Optional[str] = None
    job_name: Optional[str] = None

    def __str__(self):
        return self.job_name or self.job_id


@dataclass(frozen=True)
class JobError:
    code: str
    message: str
    details: tuple[str, ...] = ()


@dataclass(frozen=True)
class JobOutputResult:
    label: str
    state: JobState
    progress: Optional[int] = None
    error: Optional[JobError] = None


@dataclass(frozen=True)
class JobStatus:
    state: JobState
    progress: Optional[int] = None
    outputs: tuple[JobOutputResult, ...] = ()
    error: Optional[JobError] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def failed(self) -> bool:
        return self.state is JobState.ERROR

    def output_progress(self) -> dict[str, int]:
        """Progress per output label, only for outputs still processing."""
        return {
            out.label: out.progress or 0
            for out in self.outputs
            if out.state is JobState.PROCESSING
        }

    def first_error(self) -> Optional[JobError]:
        if self.error:
            return self.error
        for out in self.outputs:
            if out.error:
                return out.error
        return None


class WaitOutcome(str, Enum):
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class ProgressEvent:
    handle: JobHandle
    status: JobStatus
    poll: int

    @property
    def progress(self) -> dict[str, int]:
        return self.status.output_progress()


@dataclass
class WaitResult:
    """Outcome of waiting on a job.

    ``status`` is the last snapshot seen, ``None`` when the wait was cancelled
    before the first query.
    """

    handle: JobHandle
    outcome: WaitOutcome
    status: Optional[JobStatus] = None
    polls: int = 0
    reason: Optional[str] = None
    events: list[ProgressEvent] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.outcome is WaitOutcome.CANCELLED

    @property
    def state(self) -> Optional[JobState]:
        return self.status.state if self.status else None
