"""Event dispatcher that fans checkpointer events out to processors."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from firesaver.events.processor import AsyncEventProcessor, EventProcessor

if TYPE_CHECKING:
    from firesaver.events.types import Event

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Holds the processors of one checkpointer and feeds them events.

    Dispatch is best-effort by default: a failing processor is logged and
    never fails the persistence call that produced the event. With
    ``strict=True``, processor exceptions propagate.
    """

    def __init__(self, processors: Iterable[EventProcessor] | None = None, *, strict: bool = False) -> None:
        self._processors: list[EventProcessor] = list(processors or ())
        self._strict = strict

    @property
    def active(self) -> bool:
        """True if there is at least one registered processor."""
        return bool(self._processors)

    async def emit(self, event: Event) -> None:
        """Send *event* to every processor, awaiting async processors."""
        for processor in self._processors:
            try:
                if isinstance(processor, AsyncEventProcessor):
                    await processor.on_event_async(event)
                else:
                    processor.on_event(event)
            except Exception:
                if self._strict:
                    raise
                logger.warning("EventProcessor %s failed on %s", processor, type(event).__name__, exc_info=True)

    async def shutdown(self) -> None:
        """Shut down every processor. Best-effort unless strict."""
        for processor in self._processors:
            try:
                if isinstance(processor, AsyncEventProcessor):
                    await processor.shutdown_async()
                else:
                    processor.shutdown()
            except Exception:
                if self._strict:
                    raise
                logger.warning("EventProcessor %s failed during shutdown", processor, exc_info=True)
