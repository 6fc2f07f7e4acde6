"""Common type definitions."""

from os import PathLike as _OsPathLike
from pathlib import Path
from typing import Union

# Anything accepted where a filesystem path is expected
PathLike = Union[str, _OsPathLike]


def as_path(value: PathLike) -> Path:
    """Coerce a path-like value to an expanded Path."""
    return Path(value).expanduser()
