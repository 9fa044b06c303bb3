"""In-memory event sink."""
from typing import Iterable
import structlog
from .base import EventSink
from ..event_models import Event

log = structlog.get_logger()


class InMemorySink(EventSink):
    """In-memory implementation of the event sink, for development and tests."""

    def __init__(self, dry_run: bool = False):
        super().__init__(dry_run=dry_run)
        self._buffer: list[Event] = []

    async def write(self, event: Event) -> None:
        """Append a copy of the event to the in-memory buffer."""
        self._buffer.append(event.model_copy(deep=True))
        log.info(
            "event.written",
            event_id=event.id,
            event_type=event.event_type,
            sink="memory",
        )

    async def list_recent(self, limit: int = 50) -> Iterable[Event]:
        """List recent events, newest first."""
        return list(reversed(self._buffer))[:limit]

    async def health_check(self) -> bool:
        """In-memory sink is always healthy."""
        return True
