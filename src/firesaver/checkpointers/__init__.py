"""Checkpointer package for graph state persistence.

Provides the ``Checkpointer`` ABC, the ``FirestoreCheckpointer``
implementation, and supporting types and serializers.
"""

from firesaver.checkpointers.base import Checkpointer
from firesaver.checkpointers.firestore import FirestoreCheckpointer
from firesaver.checkpointers.serializers import JsonSerializer, PayloadCodec, Serializer
from firesaver.checkpointers.types import (
    Checkpoint,
    CheckpointConfig,
    CheckpointMetadata,
    CheckpointTuple,
    PendingWrite,
    empty_checkpoint,
    new_checkpoint_id,
)

__all__ = [
    "Checkpoint",
    "CheckpointConfig",
    "CheckpointMetadata",
    "CheckpointTuple",
    "Checkpointer",
    "FirestoreCheckpointer",
    "JsonSerializer",
    "PayloadCodec",
    "PendingWrite",
    "Serializer",
    "empty_checkpoint",
    "new_checkpoint_id",
]
