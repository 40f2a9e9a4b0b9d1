"""In-memory stand-in for the async Firestore client surface the checkpointer uses.

Covers equality/less-than filters on (nested) fields, ordering, limits,
``start_after`` cursors, whole and per-field merge-sets, and atomic batches capped at 500
operations, plus fault injection per call kind ("query", "set", "commit").
"""

import copy
from typing import Any

import pytest
from google.api_core.exceptions import InvalidArgument
from google.cloud.firestore_v1.field_path import FieldPath

from firesaver import FirestoreCheckpointer

MAX_BATCH_OPERATIONS = 500
_MISSING = object()


def _lookup(data: dict[str, Any], field_path: str) -> Any:
    if field_path == "__name__":
        return _MISSING
    value: Any = data
    for part in FieldPath.from_api_repr(field_path).parts:
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class FakeSnapshot:
    def __init__(self, reference: "FakeDocumentReference", data: dict[str, Any] | None):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, client: "FakeFirestore", collection: str, doc_id: str):
        self._client = client
        self._collection = collection
        self.id = doc_id

    async def set(self, data: dict[str, Any], merge: Any = False) -> None:
        self._client._check_fault("set")
        self._client._apply_set(self._collection, self.id, data, merge)

    async def update(self, data: dict[str, Any]) -> None:
        self._client._check_fault("set")
        self._client._apply_set(self._collection, self.id, data, merge=True)

    async def get(self) -> FakeSnapshot:
        self._client._check_fault("query")
        return FakeSnapshot(self, copy.deepcopy(self._client._docs(self._collection).get(self.id)))

    async def delete(self) -> None:
        self._client._docs(self._collection).pop(self.id, None)


class FakeQuery:
    def __init__(self, client: "FakeFirestore", collection: str, *, filters=(), orders=(), limit=None, cursor=None):
        self._client = client
        self._collection_name = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit
        self._cursor = cursor

    def _copy(self, **changes: Any) -> "FakeQuery":
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
            "cursor": self._cursor,
        }
        state.update(changes)
        return FakeQuery(self._client, self._collection_name, **state)

    def where(self, *, filter: Any) -> "FakeQuery":
        return self._copy(filters=(*self._filters, (filter.field_path, filter.op_string, filter.value)))

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "FakeQuery":
        return self._copy(orders=(*self._orders, (field_path, direction == "DESCENDING")))

    def limit(self, count: int) -> "FakeQuery":
        return self._copy(limit=count)

    def start_after(self, snapshot: FakeSnapshot) -> "FakeQuery":
        return self._copy(cursor=snapshot)

    def select(self, field_paths: Any) -> "FakeQuery":
        return self

    def _matches(self, data: dict[str, Any]) -> bool:
        for field_path, op, expected in self._filters:
            actual = _lookup(data, field_path)
            if actual is _MISSING:
                return False
            if op == "==" and actual != expected:
                return False
            if op == "<" and not (type(actual) is type(expected) and actual < expected):
                return False
        return True

    def _sort_key(self, doc_id: str, data: dict[str, Any]) -> tuple:
        return tuple(_lookup(data, field_path) for field_path, _ in self._orders) + (doc_id,)

    async def get(self) -> list[FakeSnapshot]:
        self._client._check_fault("query")
        self._client.queries.append((self._collection_name, self._limit))

        rows = [(doc_id, data) for doc_id, data in self._client._docs(self._collection_name).items() if self._matches(data)]
        rows = [(doc_id, data) for doc_id, data in rows if _MISSING not in self._sort_key(doc_id, data)]
        descending = bool(self._orders) and self._orders[0][1]
        rows.sort(key=lambda row: self._sort_key(*row), reverse=descending)

        if self._cursor is not None:
            cursor_key = self._sort_key(self._cursor.id, self._cursor._data)
            if descending:
                rows = [row for row in rows if self._sort_key(*row) < cursor_key]
            else:
                rows = [row for row in rows if self._sort_key(*row) > cursor_key]
        if self._limit is not None:
            rows = rows[: self._limit]

        return [
            FakeSnapshot(FakeDocumentReference(self._client, self._collection_name, doc_id), copy.deepcopy(data))
            for doc_id, data in rows
        ]

    async def stream(self):
        for snapshot in await self.get():
            yield snapshot


class FakeCollectionReference(FakeQuery):
    def __init__(self, client: "FakeFirestore", name: str):
        super().__init__(client, name)
        self.id = name

    def document(self, doc_id: str) -> FakeDocumentReference:
        return FakeDocumentReference(self._client, self.id, doc_id)


class FakeWriteBatch:
    def __init__(self, client: "FakeFirestore"):
        self._client = client
        self._ops: list[tuple] = []

    def set(self, reference: FakeDocumentReference, data: dict[str, Any], merge: Any = False) -> None:
        self._ops.append(("set", reference, copy.deepcopy(data), merge))

    def delete(self, reference: FakeDocumentReference) -> None:
        self._ops.append(("delete", reference, None, False))

    async def commit(self) -> list:
        self._client._check_fault("commit")
        if len(self._ops) > MAX_BATCH_OPERATIONS:
            raise InvalidArgument(f"maximum {MAX_BATCH_OPERATIONS} writes allowed per request")
        for kind, reference, data, merge in self._ops:
            if kind == "set":
                self._client._apply_set(reference._collection, reference.id, data, merge)
            else:
                self._client._docs(reference._collection).pop(reference.id, None)
        self._client.commits.append(len(self._ops))
        return []


class FakeFirestore:
    """Subset of ``google.cloud.firestore.AsyncClient`` backed by dicts."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.queries: list[tuple[str, int | None]] = []
        self.commits: list[int] = []
        self.sets = 0
        self._faults: dict[str, list] = {}

    def collection(self, name: str) -> FakeCollectionReference:
        return FakeCollectionReference(self, name)

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)

    def inject_fault(self, kind: str, error: BaseException, *, skip: int = 0) -> None:
        """Make the next call of ``kind`` after ``skip`` successful ones raise ``error``."""
        self._faults[kind] = [skip, error]

    def _check_fault(self, kind: str) -> None:
        fault = self._faults.get(kind)
        if fault is None:
            return
        if fault[0] > 0:
            fault[0] -= 1
            return
        del self._faults[kind]
        raise fault[1]

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    def _apply_set(self, collection: str, doc_id: str, data: dict[str, Any], merge: Any) -> None:
        self.sets += 1
        docs = self._docs(collection)
        if isinstance(merge, (list, tuple)):
            # Each listed field path replaces its stored value whole.
            target = docs.setdefault(doc_id, {})
            for field_path in merge:
                *parents, leaf = FieldPath.from_api_repr(field_path).parts
                source, node = data, target
                for part in parents:
                    source = source[part]
                    node = node.setdefault(part, {})
                node[leaf] = copy.deepcopy(source[leaf])
        elif merge and doc_id in docs:
            _deep_merge(docs[doc_id], data)
        else:
            docs[doc_id] = copy.deepcopy(data)


@pytest.fixture
def client():
    return FakeFirestore()


@pytest.fixture
def checkpointer(client):
    return FirestoreCheckpointer(client)
