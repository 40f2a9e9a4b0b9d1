"""Deterministic document ids for checkpoint and pending-write documents.

Components are percent-escaped before joining with ``_``; the escape also
covers ``_`` itself, so the delimiter never occurs inside a component. The
resulting ids never contain ``/`` and never start with ``__``, both of
which Firestore rejects.
"""

from __future__ import annotations

from urllib.parse import quote

DELIMITER = "_"


def _escape(part: str | int) -> str:
    return quote(str(part), safe="").replace("_", "%5F")


def _join(*parts: str | int) -> str:
    return DELIMITER.join(_escape(p) for p in parts)


def checkpoint_key(thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> str:
    """Document id for one checkpoint, stable across repeated puts."""
    return _join(thread_id, checkpoint_ns, checkpoint_id)


def write_key(thread_id: str, checkpoint_ns: str, checkpoint_id: str, task_id: str, idx: int) -> str:
    """Document id for one pending write; ``idx`` is its position in the submitted batch."""
    return _join(thread_id, checkpoint_ns, checkpoint_id, task_id, idx)
