"""Thread eraser: purges every document of a thread in bounded batches."""

from __future__ import annotations

import logging
from typing import Any

from google.cloud.firestore_v1.field_path import FieldPath

from firesaver.checkpointers._store import STORE_ERRORS, eq
from firesaver.exceptions import StoreReadFailedError, StoreWriteFailedError

logger = logging.getLogger("firesaver.checkpointers")

# Firestore's per-batch operation ceiling.
MAX_BATCH_SIZE = 500


class ThreadEraser:
    """Deletes all documents whose ``thread_id`` equals a given thread.

    Each batch is atomic; the purge as a whole is not. A failure part way
    leaves the thread partially deleted and raises; running the purge again
    picks up the remaining documents.
    """

    def __init__(self, client: Any, *, max_batch_size: int = MAX_BATCH_SIZE):
        if not 0 < max_batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"max_batch_size must be between 1 and {MAX_BATCH_SIZE}, got {max_batch_size}")
        self._client = client
        self._max_batch_size = max_batch_size

    async def purge(self, collection: Any, thread_id: str) -> int:
        """Delete the thread's documents from one collection. Returns the count deleted."""
        # Ids only; deleted documents drop out of the next fetch.
        query = collection.where(filter=eq("thread_id", thread_id)).select([FieldPath.document_id()])
        deleted = 0
        while True:
            try:
                docs = await query.limit(self._max_batch_size).get()
            except STORE_ERRORS as e:
                raise StoreReadFailedError("delete_thread", e) from e
            if not docs:
                break

            batch = self._client.batch()
            for doc in docs:
                batch.delete(doc.reference)
            try:
                await batch.commit()
            except STORE_ERRORS as e:
                if deleted:
                    logger.warning("Thread %s partially deleted: %d documents removed before failure", thread_id, deleted)
                raise StoreWriteFailedError("delete_thread", e, deleted=deleted) from e

            deleted += len(docs)
            logger.debug("Deleted batch of %d documents for thread %s", len(docs), thread_id)
            if len(docs) < self._max_batch_size:
                break
        return deleted
