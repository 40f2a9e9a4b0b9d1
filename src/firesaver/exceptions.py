"""Exceptions raised by firesaver checkpointers."""

from __future__ import annotations


class CheckpointerError(Exception):
    """Base class for every checkpointer failure.

    Attributes:
        operation: Name of the checkpointer operation that failed
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str | None = None) -> None:
        self.operation = operation
        self.message = message or self._default_message()
        super().__init__(self.message)

    def _default_message(self) -> str:
        return f"{self.operation} failed"


class MissingThreadIdError(CheckpointerError, ValueError):
    """Config has no ``thread_id``.

    Raised before any serialization or I/O happens.
    """

    def _default_message(self) -> str:
        return f"{self.operation}: config needs a thread_id"


class MissingConfigError(CheckpointerError, ValueError):
    """Config is missing one or more fields required by the operation.

    Attributes:
        missing: Names of the absent config fields
    """

    def __init__(self, operation: str, missing: list[str], message: str | None = None) -> None:
        self.missing = missing
        super().__init__(operation, message)

    def _default_message(self) -> str:
        missing_str = ", ".join(f"'{m}'" for m in self.missing)
        return f"{self.operation}: config needs thread_id, checkpoint_ns and checkpoint_id (missing {missing_str})"


class SerializationMismatchError(CheckpointerError):
    """Checkpoint and metadata serialized to different type tags.

    Attributes:
        checkpoint_type: Type tag produced for the checkpoint
        metadata_type: Type tag produced for the metadata
    """

    def __init__(self, operation: str, checkpoint_type: str, metadata_type: str) -> None:
        self.checkpoint_type = checkpoint_type
        self.metadata_type = metadata_type
        super().__init__(operation)

    def _default_message(self) -> str:
        return (
            f"{self.operation}: mismatched checkpoint & metadata types "
            f"({self.checkpoint_type!r} != {self.metadata_type!r})"
        )


class DeserializationFailedError(CheckpointerError):
    """A stored payload could not be decoded.

    Attributes:
        field: Document field holding the payload
        type_tag: Type tag stored alongside the payload
    """

    def __init__(self, operation: str, field: str, type_tag: str | None, cause: BaseException) -> None:
        self.field = field
        self.type_tag = type_tag
        super().__init__(operation, f"{operation}: cannot decode {field!r} (type {type_tag!r}): {cause}")
        self.__cause__ = cause


class StoreError(CheckpointerError):
    """Wraps a fault raised by the document store client."""

    def __init__(self, operation: str, cause: BaseException, message: str | None = None) -> None:
        super().__init__(operation, message or f"{operation}: {type(cause).__name__}: {cause}")
        self.__cause__ = cause


class StoreReadFailedError(StoreError):
    """A query against the store failed."""


class StoreUnavailableError(StoreReadFailedError):
    """The checkpoint lookup could not execute at all (network, auth, closed client)."""


class StoreWriteFailedError(StoreError):
    """A write or batch commit failed.

    Batches are atomic, so the failed batch left no trace. For thread
    deletion, ``deleted`` counts documents removed by earlier batches;
    calling ``delete_thread`` again resumes the purge.

    Attributes:
        deleted: Documents already deleted before the failure
    """

    def __init__(self, operation: str, cause: BaseException, *, deleted: int = 0) -> None:
        self.deleted = deleted
        message = f"{operation}: {type(cause).__name__}: {cause}"
        if deleted:
            message += f" ({deleted} documents deleted before the failure)"
        super().__init__(operation, cause, message)
