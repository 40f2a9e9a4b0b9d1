"""Event processor base classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from firesaver.events.types import (
        CheckpointLoadedEvent,
        CheckpointSavedEvent,
        CheckpointsListedEvent,
        Event,
        StoreErrorEvent,
        ThreadDeletedEvent,
        WritesSavedEvent,
    )


# Mapping from event class name to handler method name.
_EVENT_METHOD_MAP: dict[str, str] = {
    "CheckpointSavedEvent": "on_checkpoint_saved",
    "WritesSavedEvent": "on_writes_saved",
    "CheckpointLoadedEvent": "on_checkpoint_loaded",
    "CheckpointsListedEvent": "on_checkpoints_listed",
    "ThreadDeletedEvent": "on_thread_deleted",
    "StoreErrorEvent": "on_store_error",
}


class EventProcessor:
    """Base class for synchronous event consumers.

    Subclass and override ``on_event`` to receive all events,
    or use ``TypedEventProcessor`` for per-type dispatch.
    """

    def on_event(self, event: Event) -> None:
        """Called for every event. Override in subclasses."""

    def shutdown(self) -> None:
        """Called once when the checkpointer is closed. Override to flush buffers."""


class AsyncEventProcessor(EventProcessor):
    """Extends EventProcessor with async variants.

    The dispatcher prefers ``on_event_async`` and ``shutdown_async``
    for instances of this class.
    """

    async def on_event_async(self, event: Event) -> None:
        """Async version of on_event. Override in subclasses."""

    async def shutdown_async(self) -> None:
        """Async version of shutdown. Override to flush buffers."""


class TypedEventProcessor(EventProcessor):
    """Dispatches ``on_event`` to typed handler methods automatically.

    Override any of the ``on_*`` methods below to handle specific event types.
    Unhandled event types are silently ignored.
    """

    def on_event(self, event: Event) -> None:
        method_name = _EVENT_METHOD_MAP.get(type(event).__name__)
        if method_name is not None:
            getattr(self, method_name)(event)

    def on_checkpoint_saved(self, event: CheckpointSavedEvent) -> None: ...
    def on_writes_saved(self, event: WritesSavedEvent) -> None: ...
    def on_checkpoint_loaded(self, event: CheckpointLoadedEvent) -> None: ...
    def on_checkpoints_listed(self, event: CheckpointsListedEvent) -> None: ...
    def on_thread_deleted(self, event: ThreadDeletedEvent) -> None: ...
    def on_store_error(self, event: StoreErrorEvent) -> None: ...
