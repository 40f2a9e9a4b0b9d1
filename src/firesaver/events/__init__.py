"""Event system for observing checkpointer operations."""

from firesaver.events.dispatcher import EventDispatcher
from firesaver.events.processor import AsyncEventProcessor, EventProcessor, TypedEventProcessor
from firesaver.events.types import (
    BaseEvent,
    CheckpointLoadedEvent,
    CheckpointSavedEvent,
    CheckpointsListedEvent,
    Event,
    StoreErrorEvent,
    ThreadDeletedEvent,
    WritesSavedEvent,
)

__all__ = [
    "AsyncEventProcessor",
    "BaseEvent",
    "CheckpointLoadedEvent",
    "CheckpointSavedEvent",
    "CheckpointsListedEvent",
    "Event",
    "EventDispatcher",
    "EventProcessor",
    "StoreErrorEvent",
    "ThreadDeletedEvent",
    "TypedEventProcessor",
    "WritesSavedEvent",
]
