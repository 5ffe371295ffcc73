"""Fan-out of scene interaction signals to their processors.

The scene fires a signal (``node-select``, ``node-toggle-expand``, ...)
whenever the user acts on an element. The dispatcher hands it to every
registered processor in registration order: typically a
``SceneController`` that changes the scene, plus any recorders or host
bridges that only observe.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphscene.events.processor import EventProcessor

if TYPE_CHECKING:
    from graphscene.events.types import Event

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Ordered list of processors receiving every scene signal.

    A processor that raises is logged and skipped so one broken observer
    cannot stop the scene from reacting to a click. With ``strict=True``
    the error propagates to whoever fired the signal, which is what tests
    want.
    """

    def __init__(
        self,
        processors: list[EventProcessor] | None = None,
        *,
        strict: bool = False,
    ) -> None:
        self._processors: list[EventProcessor] = list(processors) if processors else []
        self._strict = strict

    @property
    def active(self) -> bool:
        """True if any processor would receive a fired signal."""
        return len(self._processors) > 0

    def add(self, processor: EventProcessor) -> None:
        self._processors.append(processor)

    def emit(self, event: Event) -> None:
        """Deliver a fired signal to each processor in turn."""
        for processor in self._processors:
            try:
                processor.on_event(event)
            except Exception:
                if self._strict:
                    raise
                logger.warning(
                    "EventProcessor %s failed on %s (%s for '%s')",
                    processor,
                    type(event).__name__,
                    event.signal,
                    event.name,
                    exc_info=True,
                )

    def shutdown(self) -> None:
        """Release every processor when the scene is discarded.

        All processors are shut down even if one fails. In strict mode the
        first failure is re-raised afterwards.
        """
        first_error: Exception | None = None
        for processor in self._processors:
            try:
                processor.shutdown()
            except Exception as exc:
                if not self._strict:
                    logger.warning(
                        "EventProcessor %s failed during shutdown",
                        processor,
                        exc_info=True,
                    )
                elif first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
