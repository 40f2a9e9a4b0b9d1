"""OpenTelemetry export processor: turns checkpointer events into spans.

Opt-in via::

    pip install firesaver[otel]

Usage::

    from firesaver.events.otel import OpenTelemetryProcessor

    saver = FirestoreCheckpointer(client, processors=[OpenTelemetryProcessor()])

Spans go to whatever OTel backend is configured for the process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firesaver.events.processor import TypedEventProcessor

if TYPE_CHECKING:
    from firesaver.events.types import (
        BaseEvent,
        CheckpointLoadedEvent,
        CheckpointSavedEvent,
        CheckpointsListedEvent,
        StoreErrorEvent,
        ThreadDeletedEvent,
        WritesSavedEvent,
    )


def _require_opentelemetry() -> None:
    """Raise a clear error if opentelemetry is not installed."""
    try:
        import opentelemetry  # noqa: F401
    except ImportError:
        raise ImportError(
            "The 'opentelemetry' package is required for OpenTelemetryProcessor. "
            "Install with: pip install 'firesaver[otel]' "
            "or: pip install opentelemetry-api opentelemetry-sdk"
        ) from None


class OpenTelemetryProcessor(TypedEventProcessor):
    """Records each checkpointer event as a finished span.

    Mapping:
        CheckpointSavedEvent   → ``firesaver.put``
        WritesSavedEvent       → ``firesaver.put_writes``
        CheckpointLoadedEvent  → ``firesaver.get_tuple``
        CheckpointsListedEvent → ``firesaver.list``
        ThreadDeletedEvent     → ``firesaver.delete_thread``
        StoreErrorEvent        → ``firesaver.{operation}`` with error status

    Span start and end come from the event's timestamp and duration.
    """

    def __init__(self, tracer_name: str = "firesaver", *, tracer_provider: Any = None) -> None:
        _require_opentelemetry()
        from opentelemetry import trace
        from opentelemetry.trace import StatusCode

        self._tracer = trace.get_tracer(tracer_name, tracer_provider=tracer_provider)
        self._StatusCode = StatusCode

    def _record(self, operation: str, event: BaseEvent, attributes: dict[str, Any], error: str | None = None) -> None:
        end_ns = int(event.timestamp * 1e9)
        start_ns = end_ns - int(event.duration_ms * 1e6)
        base = {
            "firesaver.thread_id": event.thread_id,
            "firesaver.checkpoint_ns": event.checkpoint_ns,
            "firesaver.duration_ms": event.duration_ms,
        }
        # OTel attributes reject None values
        base.update({key: value for key, value in attributes.items() if value is not None})
        span = self._tracer.start_span(name=f"firesaver.{operation}", start_time=start_ns, attributes=base)
        if error is not None:
            span.set_status(self._StatusCode.ERROR, error)
        span.end(end_time=end_ns)

    def on_checkpoint_saved(self, event: CheckpointSavedEvent) -> None:
        self._record(
            "put",
            event,
            {
                "firesaver.checkpoint_id": event.checkpoint_id,
                "firesaver.parent_checkpoint_id": event.parent_checkpoint_id,
            },
        )

    def on_writes_saved(self, event: WritesSavedEvent) -> None:
        self._record(
            "put_writes",
            event,
            {
                "firesaver.checkpoint_id": event.checkpoint_id,
                "firesaver.task_id": event.task_id,
                "firesaver.write_count": event.count,
            },
        )

    def on_checkpoint_loaded(self, event: CheckpointLoadedEvent) -> None:
        self._record(
            "get_tuple",
            event,
            {
                "firesaver.checkpoint_id": event.checkpoint_id,
                "firesaver.found": event.checkpoint_id is not None,
                "firesaver.pending_write_count": event.pending_write_count,
            },
        )

    def on_checkpoints_listed(self, event: CheckpointsListedEvent) -> None:
        self._record("list", event, {"firesaver.checkpoint_count": event.count})

    def on_thread_deleted(self, event: ThreadDeletedEvent) -> None:
        self._record(
            "delete_thread",
            event,
            {
                "firesaver.checkpoints_deleted": event.checkpoints_deleted,
                "firesaver.writes_deleted": event.writes_deleted,
            },
        )

    def on_store_error(self, event: StoreErrorEvent) -> None:
        self._record(event.operation, event, {"firesaver.error_type": event.error_type}, error=event.error)
