"""Checkpointer base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from firesaver.checkpointers.types import Checkpoint, CheckpointConfig, CheckpointMetadata, CheckpointTuple, ConfigLike


class Checkpointer(ABC):
    """Base class for graph state persistence.

    A checkpoint is addressed by (thread_id, checkpoint_ns, checkpoint_id).
    Pending writes hang off a checkpoint until the engine folds them into
    the next one. The engine calls ``put`` after each superstep and
    ``put_writes`` as tasks finish; ``get_tuple`` resumes a thread.

    Every method accepts a ``CheckpointConfig`` or a
    ``{"configurable": {...}}`` mapping.
    """

    # === Write Operations ===

    @abstractmethod
    async def put(self, config: ConfigLike, checkpoint: Checkpoint, metadata: CheckpointMetadata) -> CheckpointConfig:
        """Save a checkpoint with upsert semantics.

        ``config.checkpoint_id``, if set, is recorded as the parent.
        Returns the address of the saved checkpoint.
        """
        ...

    @abstractmethod
    async def put_writes(self, config: ConfigLike, writes: Sequence[tuple[str, Any]], task_id: str) -> None:
        """Save a task's (channel, value) writes against the checkpoint in ``config``."""
        ...

    @abstractmethod
    async def delete_thread(self, thread_id: str) -> None:
        """Delete every checkpoint and pending write of a thread."""
        ...

    # === Read Operations ===

    @abstractmethod
    async def get_tuple(self, config: ConfigLike) -> CheckpointTuple | None:
        """Get a checkpoint with its pending writes and parent pointer.

        ``checkpoint_id=None`` means latest. Returns None if nothing matches
        or the config has no thread_id.
        """
        ...

    @abstractmethod
    def list_checkpoints(
        self,
        config: ConfigLike | None,
        *,
        filter: Mapping[str, Any] | None = None,
        before: ConfigLike | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """Stream checkpoints newest first, optionally filtered by metadata."""
        ...

    async def get(self, config: ConfigLike) -> Checkpoint | None:
        """Get just the checkpoint.

        Default implementation calls get_tuple.
        """
        checkpoint_tuple = await self.get_tuple(config)
        return checkpoint_tuple.checkpoint if checkpoint_tuple is not None else None

    # === Lifecycle ===

    async def close(self) -> None:  # noqa: B027
        """Clean up resources."""
