"""Domain layer package."""

from .models import (
    Job,
    JobStatus,
    JobResult,
    ScheduleBatch,
    RemoteFile,
    UNKNOWN_JOB_ID,
    result_filename,
)
from .exceptions import (
    DomainException,
    InputPathError,
    UploadError,
    JobCreationError,
    ProviderError,
    ConfigurationError,
    ProviderNotConfiguredError,
)
from .protocols import IBatchClient, ILogger, IMetricsCollector

__all__ = [
    # Models
    "Job",
    "JobStatus",
    "JobResult",
    "ScheduleBatch",
    "RemoteFile",
    "UNKNOWN_JOB_ID",
    "result_filename",
    # Exceptions
    "DomainException",
    "InputPathError",
    "UploadError",
    "JobCreationError",
    "ProviderError",
    "ConfigurationError",
    "ProviderNotConfiguredError",
    # Protocols
    "IBatchClient",
    "ILogger",
    "IMetricsCollector",
]
