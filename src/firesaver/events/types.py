"""Event types emitted by checkpointer operations."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field


def _generate_span_id() -> str:
    """Generate a unique span ID."""
    return uuid.uuid4().hex[:16]


def _now() -> float:
    """Current timestamp."""
    return time.time()


@dataclass(frozen=True)
class BaseEvent:
    """Base class for all checkpointer events.

    Events are emitted once an operation finishes, so ``timestamp`` marks
    its end and ``duration_ms`` reaches back to its start.

    Attributes:
        thread_id: Thread the operation touched.
        checkpoint_ns: Namespace within the thread ("" for the root).
        span_id: Unique identifier for this event.
        timestamp: Unix timestamp when the operation finished.
        duration_ms: Wall-clock duration of the operation.
    """

    thread_id: str
    checkpoint_ns: str = ""
    span_id: str = field(default_factory=_generate_span_id)
    timestamp: float = field(default_factory=_now)
    duration_ms: float = 0.0


@dataclass(frozen=True)
class CheckpointSavedEvent(BaseEvent):
    """Emitted after ``put`` persisted a checkpoint.

    Attributes:
        checkpoint_id: Id of the saved checkpoint.
        parent_checkpoint_id: Id of its parent, None for a root checkpoint.
    """

    checkpoint_id: str = ""
    parent_checkpoint_id: str | None = None


@dataclass(frozen=True)
class WritesSavedEvent(BaseEvent):
    """Emitted after ``put_writes`` committed a batch.

    Attributes:
        checkpoint_id: Checkpoint the writes belong to.
        task_id: Task that produced the writes.
        count: Number of writes committed (0 for an empty batch).
    """

    checkpoint_id: str = ""
    task_id: str = ""
    count: int = 0


@dataclass(frozen=True)
class CheckpointLoadedEvent(BaseEvent):
    """Emitted after ``get_tuple`` finished a lookup.

    Attributes:
        checkpoint_id: Id of the loaded checkpoint, None if nothing matched.
        pending_write_count: Number of pending writes attached.
    """

    checkpoint_id: str | None = None
    pending_write_count: int = 0


@dataclass(frozen=True)
class CheckpointsListedEvent(BaseEvent):
    """Emitted after ``list_checkpoints`` ran to the end of its results.

    A consumer that stops iterating early produces no event.

    Attributes:
        count: Number of checkpoints yielded.
    """

    count: int = 0


@dataclass(frozen=True)
class ThreadDeletedEvent(BaseEvent):
    """Emitted after ``delete_thread`` purged a thread.

    Attributes:
        checkpoints_deleted: Documents removed from the checkpoints collection.
        writes_deleted: Documents removed from the writes collection.
    """

    checkpoints_deleted: int = 0
    writes_deleted: int = 0


@dataclass(frozen=True)
class StoreErrorEvent(BaseEvent):
    """Emitted when an operation fails.

    Attributes:
        operation: Name of the failed operation.
        error: Error message.
        error_type: Fully qualified name of the exception type.
    """

    operation: str = ""
    error: str = ""
    error_type: str = ""


Event = (
    CheckpointSavedEvent | WritesSavedEvent | CheckpointLoadedEvent | CheckpointsListedEvent | ThreadDeletedEvent | StoreErrorEvent
)
