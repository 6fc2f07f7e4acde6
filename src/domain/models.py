"""Domain models for batch job processing."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, List

UNKNOWN_JOB_ID = "unknown"
RESULTS_SUFFIX = "_results.jsonl"


class JobStatus(str, Enum):
    """Normalized lifecycle state of a remote batch job."""

    CREATED = "created"
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition can occur."""
        return self in _TERMINAL

    @property
    def is_failure(self) -> bool:
        """Check if this is a terminal status other than success."""
        return self in _TERMINAL and self is not JobStatus.SUCCEEDED

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "JobStatus":
        """
        Map a provider-specific status string into the fixed vocabulary.

        Handles Gemini job and batch states (``JOB_STATE_SUCCEEDED``,
        ``BATCH_STATE_RUNNING``) as well as plain words (``completed``,
        ``error``). Unrecognized values become UNKNOWN.
        """
        if not raw:
            return cls.UNKNOWN

        value = str(raw).strip().lower().replace(" ", "_").replace("-", "_")
        for prefix in ("job_state_", "batch_state_"):
            if value.startswith(prefix):
                value = value[len(prefix):]
                break

        value = _ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


_TERMINAL = frozenset({
    JobStatus.SUCCEEDED,
    JobStatus.FAILED,
    JobStatus.CANCELLED,
    JobStatus.EXPIRED,
})

_ALIASES = {
    "pending": "queued",
    "unspecified": "queued",
    "completed": "succeeded",
    "complete": "succeeded",
    "done": "succeeded",
    "error": "failed",
    "canceled": "cancelled",
    "cancelling": "cancelled",
}


@dataclass
class Job:
    """
    A remote batch job.

    Owned by the JobMonitor driving it; only ``observe`` changes its state.
    """

    id: str
    status: JobStatus = JobStatus.CREATED
    input_ref: Optional[str] = None
    output_ref: Optional[str] = None
    display_name: Optional[str] = None
    model: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Job id must be non-empty")
        if isinstance(self.status, str) and not isinstance(self.status, JobStatus):
            self.status = JobStatus.normalize(self.status)
        if self.status is not JobStatus.SUCCEEDED:
            self.output_ref = None
        elif not self.output_ref:
            raise ValueError(f"Succeeded job {self.id} requires an output reference")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def observe(
        self,
        status: JobStatus,
        output_ref: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """
        Record a freshly polled status.

        Raises:
            ValueError: If status is SUCCEEDED and no output reference is
                known, either passed here or from an earlier observation
        """
        if status is JobStatus.SUCCEEDED:
            output_ref = output_ref or self.output_ref
            if not output_ref:
                raise ValueError(f"Succeeded job {self.id} requires an output reference")
            self.output_ref = output_ref
        else:
            self.output_ref = None
        self.status = status

        if status.is_terminal and self.completed_at is None:
            self.completed_at = now or datetime.now()

    def __str__(self) -> str:
        return f"Job {self.id} ({self.status.value})"


@dataclass(frozen=True)
class JobResult:
    """Final outcome of processing one input file."""

    job_id: str
    success: bool
    output_file_path: Optional[Path] = None
    status: Optional[JobStatus] = None
    error: Optional[str] = None

    def __post_init__(self):
        if self.success and self.output_file_path is None:
            raise ValueError("Successful result requires an output file path")
        if not self.success and self.output_file_path is not None:
            raise ValueError("Failed result cannot carry an output file path")

    @classmethod
    def succeeded(cls, job_id: str, output_file_path: Path) -> "JobResult":
        return cls(
            job_id=job_id,
            success=True,
            output_file_path=Path(output_file_path),
            status=JobStatus.SUCCEEDED,
        )

    @classmethod
    def failed(
        cls,
        job_id: str = UNKNOWN_JOB_ID,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None
    ) -> "JobResult":
        return cls(job_id=job_id, success=False, status=status, error=error)


@dataclass(frozen=True)
class ScheduleBatch:
    """A group of at most ``concurrency_limit`` files dispatched together."""

    index: int
    files: List[Path]

    def __len__(self) -> int:
        return len(self.files)


@dataclass
class RemoteFile:
    """File stored on the provider side."""

    name: str
    display_name: Optional[str] = None
    size_bytes: Optional[int] = None
    mime_type: Optional[str] = None
    created_at: Optional[str] = None
    state: Optional[str] = None
    uri: Optional[str] = None

    def __str__(self) -> str:
        return f"File {self.name} ({self.state or 'unknown'})"


def result_filename(job_id: str) -> str:
    """Deterministic local filename for a job's results."""
    safe_id = job_id.replace("/", "_").replace("\\", "_")
    return f"{safe_id}{RESULTS_SUFFIX}"
