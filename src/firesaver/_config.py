"""Project-level checkpointer settings from pyproject.toml.

Reads the [tool.firesaver] section::

    [tool.firesaver]
    checkpoint_collection = "checkpoints"
    writes_collection = "checkpoint_writes"
    page_size = 100
    max_batch_size = 500
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields
from pathlib import Path

from firesaver.checkpointers._checkpoints import LIST_PAGE_SIZE
from firesaver.checkpointers._erase import MAX_BATCH_SIZE


@dataclass(frozen=True)
class CheckpointerSettings:
    """Collection names and store limits for a FirestoreCheckpointer."""

    checkpoint_collection: str = "checkpoints"
    writes_collection: str = "checkpoint_writes"
    page_size: int = LIST_PAGE_SIZE
    max_batch_size: int = MAX_BATCH_SIZE

    def __post_init__(self) -> None:
        if not self.checkpoint_collection or not self.writes_collection:
            raise ValueError("Collection names must be non-empty")
        if self.checkpoint_collection == self.writes_collection:
            raise ValueError(f"Checkpoints and writes need separate collections, both are {self.checkpoint_collection!r}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if not 0 < self.max_batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"max_batch_size must be between 1 and {MAX_BATCH_SIZE}, got {self.max_batch_size}")


def find_pyproject(start: Path | None = None) -> Path | None:
    """Walk up from start directory to find pyproject.toml."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def load_settings(start: Path | None = None) -> CheckpointerSettings:
    """Load [tool.firesaver] from the nearest pyproject.toml.

    Returns default settings if no pyproject.toml or no [tool.firesaver] section.
    Unknown keys raise ValueError.
    """
    path = find_pyproject(start)
    if path is None:
        return CheckpointerSettings()

    if sys.version_info >= (3, 11):
        import tomllib
    else:
        import tomli as tomllib

    with open(path, "rb") as f:
        data = tomllib.load(f)

    section = data.get("tool", {}).get("firesaver", {})
    if not section:
        return CheckpointerSettings()

    known = {f.name for f in fields(CheckpointerSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown [tool.firesaver] keys in {path}: {', '.join(unknown)}")
    return CheckpointerSettings(**section)
