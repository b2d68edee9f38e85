"""File system helpers shared across the pipeline."""

import os
from pathlib import Path
from typing import Union

from src.core.errors import StorageError

PathLike = Union[str, Path]


def ensure_dir(path: PathLike) -> Path:
    """Create the directory if it does not exist. Safe to call concurrently."""
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create directory {directory}: {e}") from e
    return directory


def replace_atomically(source: PathLike, target: PathLike) -> Path:
    """Move a finished file into place in one rename."""
    try:
        os.replace(source, target)
    except OSError as e:
        raise StorageError(f"Cannot move {source} to {target}: {e}") from e
    return Path(target)
