"""Pending-write store: the ``checkpoint_writes`` collection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from firesaver.checkpointers._keys import write_key
from firesaver.checkpointers._store import STORE_ERRORS, eq
from firesaver.checkpointers.serializers import PayloadCodec
from firesaver.checkpointers.types import PendingWrite
from firesaver.exceptions import StoreReadFailedError, StoreWriteFailedError

logger = logging.getLogger("firesaver.checkpointers")


class PendingWriteStore:
    """Batched upserts and per-checkpoint lookup of pending writes."""

    def __init__(self, client: Any, collection: Any, codec: PayloadCodec):
        self._client = client
        self._collection = collection
        self._codec = codec

    async def put_writes(
        self,
        thread_id: str,
        checkpoint_ns: str,
        checkpoint_id: str,
        task_id: str,
        writes: Sequence[tuple[str, Any]],
    ) -> int:
        """Upsert all writes in one atomic batch. Returns the number written.

        Each write's id includes its position in ``writes``, so resubmitting
        the same batch overwrites the same documents.
        """
        if not writes:
            return 0

        batch = self._client.batch()
        for idx, (channel, value) in enumerate(writes):
            type_tag, payload = self._codec.encode(value)
            doc_ref = self._collection.document(write_key(thread_id, checkpoint_ns, checkpoint_id, task_id, idx))
            batch.set(
                doc_ref,
                {
                    "thread_id": thread_id,
                    "checkpoint_ns": checkpoint_ns,
                    "checkpoint_id": checkpoint_id,
                    "task_id": task_id,
                    "idx": idx,
                    "channel": channel,
                    "type": type_tag,
                    "value": payload,
                },
                merge=True,
            )

        try:
            await batch.commit()
        except STORE_ERRORS as e:
            raise StoreWriteFailedError("put_writes", e) from e
        logger.debug("Committed %d writes for task %s at checkpoint %s", len(writes), task_id, checkpoint_id)
        return len(writes)

    async def get_writes(self, thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> list[PendingWrite]:
        """All pending writes recorded against one checkpoint, deserialized.

        Tasks keep the order in which the store returned them; writes of a
        task are ordered by their batch position.
        """
        query = (
            self._collection.where(filter=eq("thread_id", thread_id))
            .where(filter=eq("checkpoint_ns", checkpoint_ns))
            .where(filter=eq("checkpoint_id", checkpoint_id))
        )
        try:
            docs = await query.get()
        except STORE_ERRORS as e:
            raise StoreReadFailedError("get_writes", e) from e

        rows = [doc.to_dict() for doc in docs]
        task_order: dict[str, int] = {}
        for row in rows:
            task_order.setdefault(row["task_id"], len(task_order))
        rows.sort(key=lambda row: (task_order[row["task_id"]], row.get("idx", 0)))

        return [
            PendingWrite(
                row["task_id"],
                row["channel"],
                self._codec.decode(row.get("type"), row.get("value"), operation="get_tuple", field="value"),
            )
            for row in rows
        ]
