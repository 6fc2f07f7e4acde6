"""Presentation layer package."""

from presentation.cli import main, build_parser, create_orchestrator_from_config

__all__ = ["main", "build_parser", "create_orchestrator_from_config"]
