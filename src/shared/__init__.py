"""Shared utilities package."""

from shared.logging import setup_logger, get_logger, mask_secret, LoggerAdapter
from shared.retry import ExponentialBackoff, retry_with_backoff
from shared.metrics import MetricsCollector
from shared.types import PathLike

__all__ = [
    "setup_logger",
    "get_logger",
    "mask_secret",
    "LoggerAdapter",
    "ExponentialBackoff",
    "retry_with_backoff",
    "MetricsCollector",
    "PathLike",
]
