"""Firestore query helpers shared by the collection stores."""

from __future__ import annotations

from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import TransportError
from google.cloud.firestore_v1.base_query import BaseQuery, FieldFilter
from grpc.aio import UsageError

# Faults surfaced by the client: API errors, credential refreshes that could
# not reach the token endpoint, and RPCs attempted on a closed channel.
STORE_ERRORS: tuple[type[BaseException], ...] = (GoogleAPIError, TransportError, UsageError)

DESCENDING = BaseQuery.DESCENDING


def eq(field_path: str, value: Any) -> FieldFilter:
    return FieldFilter(field_path, "==", value)


def lt(field_path: str, value: Any) -> FieldFilter:
    return FieldFilter(field_path, "<", value)
