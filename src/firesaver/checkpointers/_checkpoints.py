"""Checkpoint store: the ``checkpoints`` collection.

Documents hold thread_id, checkpoint_ns, checkpoint_id, parent_checkpoint_id,
type, checkpoint (base64), metadata (base64) and metadata_index (queryable
copy of top-level metadata entries).
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from google.cloud.firestore_v1.field_path import FieldPath

from firesaver.checkpointers._keys import checkpoint_key
from firesaver.checkpointers._store import DESCENDING, STORE_ERRORS, eq, lt
from firesaver.checkpointers.serializers import PayloadCodec
from firesaver.checkpointers.types import Checkpoint, CheckpointMetadata
from firesaver.exceptions import SerializationMismatchError, StoreReadFailedError, StoreUnavailableError, StoreWriteFailedError

logger = logging.getLogger("firesaver.checkpointers")

LIST_PAGE_SIZE = 100
METADATA_INDEX_FIELD = "metadata_index"

_SCALARS = (str, int, float, bool, type(None))
# Firestore rejects empty map keys, so maps and lists are indexed as
# canonical JSON inside a one-key map. A scalar never equals one.
_ENCODED_KEY = "json"
_UNINDEXED = object()


def index_value(value: Any) -> Any:
    """Queryable form of one metadata value, or ``_UNINDEXED`` if it has none."""
    if isinstance(value, _SCALARS):
        return value
    try:
        encoded = json.dumps(value, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError):
        return _UNINDEXED
    return {_ENCODED_KEY: encoded}


def metadata_index(metadata: Mapping[str, Any]) -> dict[str, Any]:
    """Top-level metadata entries the store can filter on, maps and lists included."""
    index = {}
    for key, value in metadata.items():
        indexed = index_value(value)
        if key and isinstance(key, str) and indexed is not _UNINDEXED:
            index[key] = indexed
    return index


def metadata_filters(metadata_filter: Mapping[str, Any]) -> list[tuple[str, Any]]:
    """``(field_path, value)`` pairs for a metadata filter, matched against the index."""
    filters = []
    for key, value in metadata_filter.items():
        indexed = index_value(value)
        if not key or not isinstance(key, str) or indexed is _UNINDEXED:
            raise ValueError(f"metadata filter {key!r} needs a non-empty string key and a JSON-compatible value")
        filters.append((FieldPath(METADATA_INDEX_FIELD, key).to_api_repr(), indexed))
    return filters


class CheckpointStore:
    """Point lookups, paginated listing, and upserts of checkpoint documents."""

    def __init__(self, collection: Any, codec: PayloadCodec, *, page_size: int = LIST_PAGE_SIZE):
        self._collection = collection
        self._codec = codec
        self._page_size = page_size

    async def get(self, thread_id: str, checkpoint_ns: str, checkpoint_id: str | None = None) -> dict[str, Any] | None:
        """Most recent checkpoint document for the thread/namespace (or the exact id)."""
        query = self._collection.where(filter=eq("thread_id", thread_id)).where(filter=eq("checkpoint_ns", checkpoint_ns))
        if checkpoint_id is not None:
            query = query.where(filter=eq("checkpoint_id", checkpoint_id))

        try:
            docs = await query.order_by("checkpoint_id", direction=DESCENDING).limit(1).get()
        except STORE_ERRORS as e:
            raise StoreUnavailableError("get_tuple", e) from e
        if not docs:
            return None
        return docs[0].to_dict()

    async def list(
        self,
        *,
        thread_id: str | None = None,
        checkpoint_ns: str | None = None,
        before: str | None = None,
        metadata_filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield checkpoint documents newest first, one page per round trip.

        Raises ValueError on the first iteration for a metadata filter the
        index cannot hold (see ``metadata_filters``).

        Pages continue after the last document of the previous page rather
        than by offset. Stops on a short or empty page, or once ``limit``
        documents have been yielded.
        """
        query = self._collection
        if thread_id is not None:
            query = query.where(filter=eq("thread_id", thread_id))
        if checkpoint_ns is not None:
            query = query.where(filter=eq("checkpoint_ns", checkpoint_ns))
        for field_path, value in metadata_filters(metadata_filter or {}):
            query = query.where(filter=eq(field_path, value))
        if before is not None:
            query = query.where(filter=lt("checkpoint_id", before))
        query = query.order_by("checkpoint_id", direction=DESCENDING)

        remaining = limit
        page_query = query
        while remaining is None or remaining > 0:
            page_size = self._page_size if remaining is None else min(self._page_size, remaining)
            try:
                docs = await page_query.limit(page_size).get()
            except STORE_ERRORS as e:
                raise StoreReadFailedError("list", e) from e
            logger.debug("Fetched page of %d checkpoints (requested %d)", len(docs), page_size)
            if not docs:
                return

            for doc in docs:
                yield doc.to_dict()
            if remaining is not None:
                remaining -= len(docs)

            if len(docs) < page_size:
                return
            page_query = query.start_after(docs[-1])

    async def put(
        self,
        thread_id: str,
        checkpoint_ns: str,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        parent_checkpoint_id: str | None = None,
    ) -> str:
        """Upsert a checkpoint document. Returns the checkpoint id.

        Every field written here, ``metadata_index`` included, replaces its
        stored value; other fields already on the document are kept.
        """
        checkpoint_id = checkpoint["id"]
        type_tag, checkpoint_payload = self._codec.encode(checkpoint)
        metadata_type, metadata_payload = self._codec.encode(metadata)
        if type_tag != metadata_type:
            raise SerializationMismatchError("put", type_tag, metadata_type)

        data = {
            "thread_id": thread_id,
            "checkpoint_ns": checkpoint_ns,
            "checkpoint_id": checkpoint_id,
            "parent_checkpoint_id": parent_checkpoint_id,
            "type": type_tag,
            "checkpoint": checkpoint_payload,
            "metadata": metadata_payload,
            METADATA_INDEX_FIELD: metadata_index(metadata),
        }
        doc_ref = self._collection.document(checkpoint_key(thread_id, checkpoint_ns, checkpoint_id))
        try:
            # Listed fields are replaced whole; fields not listed are kept.
            await doc_ref.set(data, merge=list(data))
        except STORE_ERRORS as e:
            raise StoreWriteFailedError("put", e) from e
        return checkpoint_id
