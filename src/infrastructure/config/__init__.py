"""Configuration package."""

from infrastructure.config.loader import ConfigLoader, BatchConfig

__all__ = ["ConfigLoader", "BatchConfig"]
