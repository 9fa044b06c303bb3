"""SQL event sink backed by SQLAlchemy's asyncio engine."""
from datetime import datetime, timezone

import orjson
import structlog
from sqlalchemy import JSON, BigInteger, Column, DateTime, MetaData, String, Table, Text, func, insert, text
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .base import EventSink
from ..errors import PersistenceError
from ..event_models import Event, Present

log = structlog.get_logger()

metadata_obj = MetaData()

_Timestamp = DateTime().with_variant(mysql.TIMESTAMP(), "mysql")

# Fixed persistence contract; created if missing, never migrated.
events_table = Table(
    "events",
    metadata_obj,
    Column("id", BigInteger().with_variant(mysql.BIGINT(unsigned=True), "mysql"), primary_key=True, autoincrement=False),
    Column("event_type", String(20), nullable=False),
    Column("start_time", _Timestamp, server_default=func.current_timestamp()),
    Column("end_time", _Timestamp, nullable=True),
    Column("notes", Text, nullable=True),
    Column("metadata", JSON, nullable=True),
    Column("insert_time", _Timestamp, server_default=func.current_timestamp()),
)


def _utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _dumps(value) -> str:
    return orjson.dumps(value).decode()


def event_row(event: Event) -> dict:
    """Column values for one event."""
    return {
        "id": event.id,
        "event_type": event.event_type,
        "start_time": _utc(event.start_time),
        "end_time": _utc(event.end_time.value) if isinstance(event.end_time, Present) else None,
        "notes": event.notes,
        "metadata": event.metadata,
    }


class SqlEventSink(EventSink):
    """
    Writes one row per event into the ``events`` table.

    The engine's connection pool is shared by all requests.
    """

    def __init__(self, database_url: str, dry_run: bool = False, engine: AsyncEngine | None = None):
        """
        Args:
            database_url: SQLAlchemy async URL, e.g. ``mysql+aiomysql://...``
            dry_run: Trace every write instead of executing it
            engine: Pre-built engine (tests)
        """
        super().__init__(dry_run=dry_run)
        self.database_url = database_url
        self._engine = engine

    def _get_engine(self) -> AsyncEngine:
        """Get or create the async engine."""
        if self._engine is None:
            options = {"json_serializer": _dumps, "pool_pre_ping": True}
            if make_url(self.database_url).get_backend_name() != "sqlite":
                options.update(pool_size=10, max_overflow=20)
            self._engine = create_async_engine(self.database_url, **options)
        return self._engine

    async def init(self) -> None:
        """Create the events table if it does not exist."""
        async with self._get_engine().begin() as conn:
            await conn.run_sync(metadata_obj.create_all)
        log.info("sink.initialized", sink="sql", backend=make_url(self.database_url).get_backend_name())

    async def write(self, event: Event) -> None:
        """
        Insert the event.

        Raises:
            PersistenceError: If the database rejects the write
        """
        try:
            row = event_row(event)
        except (OverflowError, ValueError) as e:
            log.error("sql.row_invalid", error=str(e), event_id=event.id)
            raise PersistenceError(str(e)) from e

        try:
            async with self._get_engine().begin() as conn:
                await conn.execute(insert(events_table).values(**row))
        except SQLAlchemyError as e:
            log.error("sql.write_failed", error=str(e), event_id=event.id)
            raise PersistenceError(str(e)) from e

        log.info(
            "event.written",
            event_id=event.id,
            event_type=event.event_type,
            sink="sql",
        )

    async def health_check(self) -> bool:
        """
        Check database connectivity.

        Returns:
            True if a trivial query succeeds, False otherwise
        """
        try:
            async with self._get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            log.warning("sql.health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Dispose of the connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
