"""Expansion of input paths into batch input files."""

from pathlib import Path
from typing import Iterable, List, Optional, Set

from domain.exceptions import InputPathError
from domain.protocols import ILogger
from shared.logging import LoggerAdapter, get_logger
from shared.types import PathLike, as_path


class InputExpander:
    """
    Turns files and directories into an ordered, de-duplicated file list.

    Directories contribute their immediate children whose extension matches
    (case-insensitive), sorted by name. Files with another extension are
    skipped with a warning. A path that does not exist raises InputPathError.
    """

    def __init__(self, extension: str = ".jsonl", logger: Optional[ILogger] = None):
        if not extension.startswith("."):
            extension = f".{extension}"
        self.extension = extension.lower()
        self._logger = logger or LoggerAdapter(get_logger(__name__))

    def matches(self, path: PathLike) -> bool:
        """Check if a path has the expected extension."""
        return Path(path).suffix.lower() == self.extension

    def expand(self, input_paths: Iterable[PathLike]) -> List[Path]:
        """
        Expand input paths into eligible files.

        Args:
            input_paths: Files and/or directories

        Returns:
            Eligible files in input order; empty if nothing matched

        Raises:
            InputPathError: If a path does not exist
        """
        files: List[Path] = []
        seen: Set[Path] = set()

        for raw in input_paths:
            for candidate in self._expand_one(as_path(raw)):
                key = candidate.resolve()
                if key in seen:
                    self._logger.debug(f"Skipping duplicate input: {candidate}")
                    continue
                seen.add(key)
                files.append(candidate)

        if not files:
            self._logger.warning(f"No {self.extension} files found in the provided paths")

        return files

    def _expand_one(self, path: Path) -> List[Path]:
        if not path.exists():
            raise InputPathError(f"Input path does not exist: {path}")

        if path.is_dir():
            children = sorted(path.iterdir(), key=lambda p: p.name)
            matched = [p for p in children if p.is_file() and self.matches(p)]
            self._logger.debug(f"Found {len(matched)} {self.extension} files in {path}")
            return matched

        if self.matches(path):
            return [path]

        self._logger.warning(f"Skipping non-{self.extension.lstrip('.').upper()} file: {path}")
        return []
