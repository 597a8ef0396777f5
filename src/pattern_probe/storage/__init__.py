"""Storage for pattern trees, extraction tasks and record logs."""

from pathlib import Path
from typing import Optional

from pattern_probe.storage.filesystem import FileTaskStore
from pattern_probe.storage.memory import InMemoryTaskStore
from pattern_probe.storage.protocol import TaskStore


def create_store(storage_dir: Optional[Path] = None) -> TaskStore:
    """File store when a directory is configured, in-memory otherwise."""
    if storage_dir is not None:
        return FileTaskStore(storage_dir)
    return InMemoryTaskStore()


__all__ = ["FileTaskStore", "InMemoryTaskStore", "TaskStore", "create_store"]
