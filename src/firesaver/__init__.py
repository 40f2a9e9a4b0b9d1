"""Firesaver - resumable graph checkpoints persisted in Firestore."""

from firesaver._config import CheckpointerSettings, load_settings
from firesaver.checkpointers import (
    Checkpoint,
    CheckpointConfig,
    Checkpointer,
    CheckpointMetadata,
    CheckpointTuple,
    FirestoreCheckpointer,
    JsonSerializer,
    PendingWrite,
    Serializer,
    empty_checkpoint,
    new_checkpoint_id,
)
from firesaver.exceptions import (
    CheckpointerError,
    DeserializationFailedError,
    MissingConfigError,
    MissingThreadIdError,
    SerializationMismatchError,
    StoreError,
    StoreReadFailedError,
    StoreUnavailableError,
    StoreWriteFailedError,
)

__all__ = [
    # Checkpointers
    "Checkpointer",
    "FirestoreCheckpointer",
    # Types
    "Checkpoint",
    "CheckpointConfig",
    "CheckpointMetadata",
    "CheckpointTuple",
    "PendingWrite",
    "empty_checkpoint",
    "new_checkpoint_id",
    # Serialization
    "JsonSerializer",
    "Serializer",
    # Configuration
    "CheckpointerSettings",
    "load_settings",
    # Errors
    "CheckpointerError",
    "DeserializationFailedError",
    "MissingConfigError",
    "MissingThreadIdError",
    "SerializationMismatchError",
    "StoreError",
    "StoreReadFailedError",
    "StoreUnavailableError",
    "StoreWriteFailedError",
]
