"""Application layer package."""

from application.expander import InputExpander
from application.monitor import JobMonitor, MonitorState
from application.scheduler import ConcurrencyScheduler, partition
from application.orchestrator import BatchOrchestrator
from application.factories import BatchClientFactory
from application.jsonl_builder import JsonlRequestBuilder

__all__ = [
    "InputExpander",
    "JobMonitor",
    "MonitorState",
    "ConcurrencyScheduler",
    "partition",
    "BatchOrchestrator",
    "BatchClientFactory",
    "JsonlRequestBuilder",
]
