"""Base interface for event persistence backends."""
from abc import ABC, abstractmethod

import orjson
import structlog

from ..event_models import Event, from_nullable_timestamp

log = structlog.get_logger()


def format_insert_trace(event: Event) -> str:
    """
    Render the INSERT a dry run would have executed.

    This is a diagnostic trace for the logs only; it is never executed.
    """
    metadata = orjson.dumps(event.metadata).decode()
    start_time = event.start_time.isoformat() if event.start_time else ""
    end_time = from_nullable_timestamp(event.end_time) or ""
    return (
        "INSERT INTO events (id, event_type, start_time, end_time, notes, metadata) "
        f"VALUES ({event.id}, '{event.event_type}', '{start_time}', '{end_time}', "
        f"'{event.notes}', '{metadata}')"
    )


class EventSink(ABC):
    """
    Append-only store for validated events.

    Subclasses implement ``write``; ``record`` adds dry-run handling on top.
    """

    def __init__(self, dry_run: bool = False):
        """
        Args:
            dry_run: Trace every write instead of executing it
        """
        self.dry_run = dry_run

    async def record(self, event: Event) -> None:
        """
        Persist a validated event, or log it if this is a dry run.

        Raises:
            PersistenceError: If the backend write fails
        """
        if self.dry_run or event.dry_run:
            event.dry_run = True
            log.info("event.dry_run", event_id=event.id, statement=format_insert_trace(event))
            return
        await self.write(event)

    @abstractmethod
    async def write(self, event: Event) -> None:
        """
        Insert one row for the event.

        Args:
            event: An event that passed ``validate_and_rectify``
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the backend is reachable.

        Returns:
            True if backend is healthy, False otherwise
        """
        pass

    async def init(self) -> None:
        """Prepare the backend (create tables, open pools)."""

    async def close(self) -> None:
        """Release backend resources."""
