"""Protocol definitions for dependency inversion."""

from pathlib import Path
from typing import Protocol, List, Optional

from .models import Job, JobStatus, RemoteFile


class IBatchClient(Protocol):
    """Interface for a provider's asynchronous batch API."""

    def upload_file(self, path: Path) -> str:
        """
        Upload a local JSONL file.

        Returns:
            Provider reference to the uploaded file

        Raises:
            UploadError: If the upload fails
        """
        ...

    def create_job(self, file_ref: str) -> Optional[Job]:
        """Create a batch job from an uploaded file; None on failure."""
        ...

    def get_job(self, job_id: str) -> Optional[Job]:
        """
        Get job details; None if unavailable.

        A returned job in SUCCEEDED status always carries its output reference.
        """
        ...

    def get_job_status(self, job_id: str) -> Optional[JobStatus]:
        """Get the current normalized status; None if unavailable."""
        ...

    def fetch_job_output(self, job_id: str, destination: Path) -> bool:
        """Download job results to destination; False on failure."""
        ...

    def cancel_job(self, job_id: str) -> bool:
        """Cancel a remote job."""
        ...

    def list_jobs(self, limit: Optional[int] = None) -> List[Job]:
        """List recent jobs."""
        ...

    def list_files(self, limit: Optional[int] = None) -> List[RemoteFile]:
        """List uploaded files."""
        ...

    def get_file(self, name: str) -> Optional[RemoteFile]:
        """Get uploaded file details; None if not found."""
        ...


class ILogger(Protocol):
    """Interface for logging."""

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, **kwargs) -> None:
        """Log error message."""
        ...

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        ...


class IMetricsCollector(Protocol):
    """Interface for collecting metrics."""

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        ...

    def stop_timer(self, name: str) -> float:
        """Stop a named timer and return elapsed time."""
        ...

    def increment_counter(self, name: str, amount: int = 1) -> None:
        """Increment a named counter."""
        ...

    def get_summary(self) -> dict:
        """Get summary of all metrics."""
        ...
