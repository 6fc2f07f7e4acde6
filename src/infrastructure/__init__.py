"""Infrastructure layer package."""

from infrastructure.config import ConfigLoader, BatchConfig
from infrastructure.gemini import GeminiBatchClient

__all__ = [
    "ConfigLoader",
    "BatchConfig",
    "GeminiBatchClient",
]
