"""Gemini provider package."""

from infrastructure.gemini.client import GeminiBatchClient

__all__ = ["GeminiBatchClient"]
