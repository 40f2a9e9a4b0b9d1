"""Checkpointer types for graph state persistence."""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, NamedTuple

Checkpoint = dict[str, Any]
"""Snapshot of graph state. The ``"id"`` key holds the checkpoint id."""

CheckpointMetadata = dict[str, Any]

_id_lock = threading.Lock()
_last_id_ns = 0


def new_checkpoint_id() -> str:
    """Generate a checkpoint id that sorts after every id generated before it.

    Ids are a zero-padded nanosecond clock reading followed by a random
    suffix, so lexicographic (store-native) order is creation order.
    The clock part is strictly increasing within a process.
    """
    global _last_id_ns
    with _id_lock:
        now = max(time.time_ns(), _last_id_ns + 1)
        _last_id_ns = now
    return f"{now:020d}-{uuid.uuid4().hex[:8]}"


def empty_checkpoint() -> Checkpoint:
    """Fresh checkpoint with a new id and no channel state."""
    return {
        "v": 1,
        "id": new_checkpoint_id(),
        "ts": datetime.now(timezone.utc).isoformat(),
        "channel_values": {},
        "channel_versions": {},
        "versions_seen": {},
    }


@dataclass(frozen=True)
class CheckpointConfig:
    """Logical address of a checkpoint.

    Any field may be absent; each operation checks what it needs.
    Key derivation treats an absent namespace as ``""``.

    Attributes:
        thread_id: Independently resumable execution context.
        checkpoint_ns: Sub-scope of the thread holding its own lineage.
        checkpoint_id: Specific checkpoint; None means "latest".
    """

    thread_id: str | None = None
    checkpoint_ns: str | None = None
    checkpoint_id: str | None = None

    @property
    def namespace(self) -> str:
        return self.checkpoint_ns or ""

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> CheckpointConfig:
        """Build from a ``{"configurable": {...}}`` mapping (or the inner dict)."""
        inner = config.get("configurable", config)
        if inner is None:
            inner = {}
        return cls(
            thread_id=inner.get("thread_id"),
            checkpoint_ns=inner.get("checkpoint_ns"),
            checkpoint_id=inner.get("checkpoint_id"),
        )

    def to_mapping(self) -> dict[str, Any]:
        """``{"configurable": {...}}`` shape, omitting absent fields."""
        configurable = {
            key: value
            for key, value in (
                ("thread_id", self.thread_id),
                ("checkpoint_ns", self.checkpoint_ns),
                ("checkpoint_id", self.checkpoint_id),
            )
            if value is not None
        }
        return {"configurable": configurable}


ConfigLike = CheckpointConfig | Mapping[str, Any]


def as_config(config: ConfigLike | None) -> CheckpointConfig:
    """Normalize the accepted config shapes to a CheckpointConfig."""
    if config is None:
        return CheckpointConfig()
    if isinstance(config, CheckpointConfig):
        return config
    return CheckpointConfig.from_mapping(config)


class PendingWrite(NamedTuple):
    """A task's contribution to a channel, not yet folded into a checkpoint."""

    task_id: str
    channel: str
    value: Any


@dataclass
class CheckpointTuple:
    """A checkpoint with everything needed to resume from it.

    Attributes:
        config: Address of this checkpoint.
        checkpoint: Deserialized checkpoint.
        metadata: Deserialized metadata.
        pending_writes: Writes recorded against this checkpoint.
            Only populated by ``get_tuple``; listings leave it empty.
        parent_config: Address of the parent checkpoint, None for roots.
    """

    config: CheckpointConfig
    checkpoint: Checkpoint
    metadata: CheckpointMetadata
    pending_writes: list[PendingWrite] = field(default_factory=list)
    parent_config: CheckpointConfig | None = None
