"""Serializers for checkpoint payloads.

Payloads are stored as document string fields: the serializer turns a value
into ``(type_tag, bytes)``, the bytes are base64-encoded for storage, and on
the way back the decoded bytes are handed to the serializer as UTF-8 text.
"""

from __future__ import annotations

import base64
import binascii
import json
from abc import ABC, abstractmethod
from typing import Any

from firesaver.exceptions import DeserializationFailedError


class Serializer(ABC):
    """Base class for typed value serialization.

    ``loads_typed`` receives text, not bytes, because stored payloads
    round-trip through string fields. Serializers must therefore emit
    UTF-8 decodable bytes.
    """

    @abstractmethod
    def dumps_typed(self, value: Any) -> tuple[str, bytes]:
        """Convert value to a ``(type_tag, bytes)`` pair."""
        ...

    @abstractmethod
    def loads_typed(self, type_tag: str, data: str) -> Any:
        """Convert text produced from ``dumps_typed`` bytes back to a value."""
        ...


class JsonSerializer(Serializer):
    """JSON serializer (default). Safe, human-readable, inspectable.

    By default, raises TypeError on non-JSON-serializable types.
    Pass ``lossy=True`` to fall back to ``str()`` for unsupported types.
    """

    type_tag = "json"

    def __init__(self, *, lossy: bool = False):
        self._default = str if lossy else None

    def dumps_typed(self, value: Any) -> tuple[str, bytes]:
        return self.type_tag, json.dumps(value, default=self._default).encode("utf-8")

    def loads_typed(self, type_tag: str, data: str) -> Any:
        if type_tag != self.type_tag:
            raise ValueError(f"JsonSerializer cannot decode type {type_tag!r}")
        return json.loads(data)


class PayloadCodec:
    """Moves values between Python objects and ``(type_tag, base64 text)``.

    Wraps an injected Serializer; all stored payload fields go through here.
    """

    def __init__(self, serializer: Serializer):
        self.serializer = serializer

    def encode(self, value: Any) -> tuple[str, str]:
        type_tag, raw = self.serializer.dumps_typed(value)
        return type_tag, base64.b64encode(raw).decode("ascii")

    def decode(self, type_tag: str | None, payload: Any, *, operation: str, field: str) -> Any:
        """Decode a stored payload, raising DeserializationFailedError on any failure.

        Whatever an injected serializer raises while decoding is wrapped too.
        """
        try:
            if not isinstance(payload, str) or type_tag is None:
                raise ValueError(f"expected a typed base64 string, got {type(payload).__name__}")
            text = base64.b64decode(payload, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise DeserializationFailedError(operation, field, type_tag, e) from e
        try:
            return self.serializer.loads_typed(type_tag, text)
        except Exception as e:
            raise DeserializationFailedError(operation, field, type_tag, e) from e
