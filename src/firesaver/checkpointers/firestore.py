"""Firestore-backed checkpointer."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from firesaver.checkpointers._checkpoints import LIST_PAGE_SIZE, CheckpointStore
from firesaver.checkpointers._erase import MAX_BATCH_SIZE, ThreadEraser
from firesaver.checkpointers._writes import PendingWriteStore
from firesaver.checkpointers.base import Checkpointer
from firesaver.checkpointers.serializers import JsonSerializer, PayloadCodec, Serializer
from firesaver.checkpointers.types import (
    Checkpoint,
    CheckpointConfig,
    CheckpointMetadata,
    CheckpointTuple,
    ConfigLike,
    as_config,
)
from firesaver.events import (
    CheckpointLoadedEvent,
    CheckpointSavedEvent,
    CheckpointsListedEvent,
    EventDispatcher,
    EventProcessor,
    StoreErrorEvent,
    ThreadDeletedEvent,
    WritesSavedEvent,
)
from firesaver.events.types import BaseEvent
from firesaver.exceptions import CheckpointerError, MissingConfigError, MissingThreadIdError

logger = logging.getLogger("firesaver.checkpointers")


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class FirestoreCheckpointer(Checkpointer):
    """Checkpoint persistence on Firestore.

    Checkpoints live in one collection and pending writes in another, both
    keyed deterministically so every save is an idempotent merge-upsert.
    The client handle is owned by the caller.

    Args:
        client: ``google.cloud.firestore.AsyncClient``.
        serializer: Payload serializer (default: JSON).
        checkpoint_collection: Collection holding checkpoints.
        writes_collection: Collection holding pending writes.
        page_size: Documents fetched per round trip when listing.
        max_batch_size: Operations per delete batch (Firestore allows 500).
        processors: Event processors notified after each operation.

    Example::

        client = firestore.AsyncClient()
        checkpointer = FirestoreCheckpointer(client)

        config = await checkpointer.put({"configurable": {"thread_id": "t-1"}}, checkpoint, {"step": 0})
        await checkpointer.put_writes(config, [("messages", "hi")], task_id="task-1")
        latest = await checkpointer.get_tuple({"configurable": {"thread_id": "t-1"}})
    """

    def __init__(
        self,
        client: Any,
        *,
        serializer: Serializer | None = None,
        checkpoint_collection: str = "checkpoints",
        writes_collection: str = "checkpoint_writes",
        page_size: int = LIST_PAGE_SIZE,
        max_batch_size: int = MAX_BATCH_SIZE,
        processors: Iterable[EventProcessor] | None = None,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._client = client
        self._codec = PayloadCodec(serializer or JsonSerializer())
        self.checkpoint_collection = client.collection(checkpoint_collection)
        self.writes_collection = client.collection(writes_collection)
        self._checkpoints = CheckpointStore(self.checkpoint_collection, self._codec, page_size=page_size)
        self._writes = PendingWriteStore(client, self.writes_collection, self._codec)
        self._eraser = ThreadEraser(client, max_batch_size=max_batch_size)
        self._events = EventDispatcher(processors)

    @classmethod
    def from_config(
        cls,
        client: Any,
        *,
        start: Path | None = None,
        serializer: Serializer | None = None,
        processors: Iterable[EventProcessor] | None = None,
    ) -> FirestoreCheckpointer:
        """Build a checkpointer from the [tool.firesaver] section of the nearest pyproject.toml."""
        from firesaver._config import load_settings

        settings = load_settings(start)
        return cls(
            client,
            serializer=serializer,
            checkpoint_collection=settings.checkpoint_collection,
            writes_collection=settings.writes_collection,
            page_size=settings.page_size,
            max_batch_size=settings.max_batch_size,
            processors=processors,
        )

    async def close(self) -> None:
        """Shut down event processors. The Firestore client stays open."""
        await self._events.shutdown()

    # === Write ===

    async def put(self, config: ConfigLike, checkpoint: Checkpoint, metadata: CheckpointMetadata) -> CheckpointConfig:
        """Upsert a checkpoint; the config's checkpoint_id becomes its parent."""
        cfg = as_config(config)
        if not cfg.thread_id:
            raise MissingThreadIdError("put")

        started = time.perf_counter()
        try:
            checkpoint_id = await self._checkpoints.put(
                cfg.thread_id,
                cfg.namespace,
                checkpoint,
                metadata,
                parent_checkpoint_id=cfg.checkpoint_id,
            )
        except CheckpointerError as e:
            await self._emit_error("put", cfg, e, started)
            raise

        await self._emit(
            CheckpointSavedEvent(
                thread_id=cfg.thread_id,
                checkpoint_ns=cfg.namespace,
                duration_ms=_elapsed_ms(started),
                checkpoint_id=checkpoint_id,
                parent_checkpoint_id=cfg.checkpoint_id,
            )
        )
        return CheckpointConfig(thread_id=cfg.thread_id, checkpoint_ns=cfg.namespace, checkpoint_id=checkpoint_id)

    async def put_writes(self, config: ConfigLike, writes: Sequence[tuple[str, Any]], task_id: str) -> None:
        """Save a task's writes in one atomic batch. An empty list is a no-op."""
        cfg = as_config(config)
        missing = [
            name
            for name, present in (
                ("thread_id", bool(cfg.thread_id)),
                ("checkpoint_ns", cfg.checkpoint_ns is not None),
                ("checkpoint_id", cfg.checkpoint_id is not None),
            )
            if not present
        ]
        if missing:
            raise MissingConfigError("put_writes", missing)

        started = time.perf_counter()
        try:
            count = await self._writes.put_writes(cfg.thread_id, cfg.checkpoint_ns, cfg.checkpoint_id, task_id, writes)
        except CheckpointerError as e:
            await self._emit_error("put_writes", cfg, e, started)
            raise

        await self._emit(
            WritesSavedEvent(
                thread_id=cfg.thread_id,
                checkpoint_ns=cfg.checkpoint_ns,
                duration_ms=_elapsed_ms(started),
                checkpoint_id=cfg.checkpoint_id,
                task_id=task_id,
                count=count,
            )
        )

    async def delete_thread(self, thread_id: str) -> None:
        """Delete every checkpoint and pending write of ``thread_id``.

        Documents go in batches of at most ``max_batch_size``. Not atomic
        across batches: on failure the error reports how much was deleted,
        and calling again finishes the job.
        """
        if not thread_id:
            raise MissingThreadIdError("delete_thread")

        cfg = CheckpointConfig(thread_id=thread_id)
        started = time.perf_counter()
        try:
            checkpoints_deleted = await self._eraser.purge(self.checkpoint_collection, thread_id)
            writes_deleted = await self._eraser.purge(self.writes_collection, thread_id)
        except CheckpointerError as e:
            await self._emit_error("delete_thread", cfg, e, started)
            raise

        if checkpoints_deleted or writes_deleted:
            logger.info(
                "Deleted thread %s: %d checkpoints, %d pending writes",
                thread_id,
                checkpoints_deleted,
                writes_deleted,
            )
        await self._emit(
            ThreadDeletedEvent(
                thread_id=thread_id,
                duration_ms=_elapsed_ms(started),
                checkpoints_deleted=checkpoints_deleted,
                writes_deleted=writes_deleted,
            )
        )

    # === Read ===

    async def get_tuple(self, config: ConfigLike) -> CheckpointTuple | None:
        """Latest (or exact) checkpoint with its pending writes and parent pointer."""
        cfg = as_config(config)
        if not cfg.thread_id:
            return None

        started = time.perf_counter()
        try:
            doc = await self._checkpoints.get(cfg.thread_id, cfg.namespace, cfg.checkpoint_id)
            if doc is None:
                checkpoint_tuple = None
            else:
                checkpoint_tuple = self._to_tuple(doc, "get_tuple")
                checkpoint_tuple.pending_writes = await self._writes.get_writes(
                    cfg.thread_id,
                    cfg.namespace,
                    checkpoint_tuple.config.checkpoint_id,
                )
        except CheckpointerError as e:
            await self._emit_error("get_tuple", cfg, e, started)
            raise

        await self._emit(
            CheckpointLoadedEvent(
                thread_id=cfg.thread_id,
                checkpoint_ns=cfg.namespace,
                duration_ms=_elapsed_ms(started),
                checkpoint_id=checkpoint_tuple.config.checkpoint_id if checkpoint_tuple else None,
                pending_write_count=len(checkpoint_tuple.pending_writes) if checkpoint_tuple else 0,
            )
        )
        return checkpoint_tuple

    async def list_checkpoints(
        self,
        config: ConfigLike | None,
        *,
        filter: Mapping[str, Any] | None = None,
        before: ConfigLike | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """Stream checkpoints newest first.

        A thread_id or checkpoint_ns left unset in ``config`` is not filtered
        on. ``filter`` matches top-level metadata entries by equality, maps
        and lists included; a key or value the index cannot hold raises
        ValueError. ``before`` keeps only checkpoints with a smaller id.
        Listed tuples carry no pending writes. A listing that runs to the
        end emits a CheckpointsListedEvent.
        """
        cfg = as_config(config)
        before_id = as_config(before).checkpoint_id if before is not None else None
        started = time.perf_counter()
        docs = self._checkpoints.list(
            thread_id=cfg.thread_id,
            checkpoint_ns=cfg.checkpoint_ns,
            before=before_id,
            metadata_filter=filter,
            limit=limit,
        )
        count = 0
        try:
            async for doc in docs:
                yield self._to_tuple(doc, "list")
                count += 1
        except CheckpointerError as e:
            await self._emit_error("list", cfg, e, started)
            raise
        finally:
            await docs.aclose()

        await self._emit(
            CheckpointsListedEvent(
                thread_id=cfg.thread_id or "",
                checkpoint_ns=cfg.namespace,
                duration_ms=_elapsed_ms(started),
                count=count,
            )
        )

    # === Internal ===

    def _to_tuple(self, doc: dict[str, Any], operation: str) -> CheckpointTuple:
        """Decode a checkpoint document into a CheckpointTuple (without pending writes)."""
        type_tag = doc.get("type")
        checkpoint = self._codec.decode(type_tag, doc.get("checkpoint"), operation=operation, field="checkpoint")
        metadata = self._codec.decode(type_tag, doc.get("metadata"), operation=operation, field="metadata")

        thread_id = doc["thread_id"]
        checkpoint_ns = doc.get("checkpoint_ns") or ""
        parent_id = doc.get("parent_checkpoint_id")
        return CheckpointTuple(
            config=CheckpointConfig(thread_id=thread_id, checkpoint_ns=checkpoint_ns, checkpoint_id=doc["checkpoint_id"]),
            checkpoint=checkpoint,
            metadata=metadata,
            parent_config=(
                CheckpointConfig(thread_id=thread_id, checkpoint_ns=checkpoint_ns, checkpoint_id=parent_id) if parent_id else None
            ),
        )

    async def _emit(self, event: BaseEvent) -> None:
        if self._events.active:
            await self._events.emit(event)

    async def _emit_error(self, operation: str, cfg: CheckpointConfig, error: CheckpointerError, started: float) -> None:
        await self._emit(
            StoreErrorEvent(
                thread_id=cfg.thread_id or "",
                checkpoint_ns=cfg.namespace,
                duration_ms=_elapsed_ms(started),
                operation=operation,
                error=str(error),
                error_type=f"{type(error).__module__}.{type(error).__qualname__}",
            )
        )
