"""
Canonical event record and its validation rules.

Every entry path (direct API, GitHub webhooks, Slack interactions) builds an
``Event`` and runs ``validate_and_rectify`` on it before anything is written.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Union

from pydantic import BaseModel, Field, JsonValue, PlainSerializer, PlainValidator, WithJsonSchema, field_validator

from .errors import EventValidationError
from .ids import IdGenerator

# Types with a dedicated meaning. The direct API accepts any non-empty type;
# this set is informational only.
KNOWN_EVENT_TYPES = frozenset({
    "DEPLOYMENT",
    "MERGE",
    "APP RELEASE",
    "EXPERIMENT",
    "OPS ACTIVITY",
    "INCIDENT",
    "PULL REQUEST",
    "PUSH",
})


def is_known_event_type(event_type: str) -> bool:
    return event_type in KNOWN_EVENT_TYPES


def is_zero_timestamp(value: datetime) -> bool:
    """True for the zero instant (0001-01-01T00:00:00Z) that some senders use for 'unset'."""
    offset = value.utcoffset() or timedelta(0)
    try:
        return value.replace(tzinfo=None) - offset == datetime.min
    except OverflowError:
        return False


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an RFC 3339 string (or pass through a datetime).

    Naive values are interpreted as UTC.

    Raises:
        ValueError: If the value is not a timestamp, or its instant falls
            outside the representable UTC range
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        raise ValueError(f"expected an RFC 3339 timestamp, got {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)

    try:
        parsed.astimezone(timezone.utc)
    except OverflowError:
        raise ValueError(f"timestamp {parsed.isoformat()} is out of range")
    return parsed


@dataclass(frozen=True)
class Absent:
    """No timestamp."""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class Present:
    """A timestamp that was supplied."""

    value: datetime


ABSENT = Absent()


def to_nullable_timestamp(value: Any) -> Union[Absent, Present]:
    """Deserialize: null or the zero timestamp is absent, anything else must parse."""
    if isinstance(value, (Absent, Present)):
        return value
    if value is None:
        return ABSENT
    parsed = parse_timestamp(value)
    if is_zero_timestamp(parsed):
        return ABSENT
    return Present(parsed)


def from_nullable_timestamp(value: Union[Absent, Present]) -> str | None:
    """Serialize: absent is an explicit null, present is RFC 3339 text."""
    if isinstance(value, Present):
        return value.value.isoformat()
    return None


NullableTimestamp = Annotated[
    Union[Absent, Present],
    PlainValidator(to_nullable_timestamp),
    PlainSerializer(from_nullable_timestamp),
    WithJsonSchema({"anyOf": [{"type": "string", "format": "date-time"}, {"type": "null"}]}),
]


class Event(BaseModel):
    """
    The canonical unit of record.

    ``id`` is never supplied by callers; it is assigned by
    ``validate_and_rectify``. ``dry_run`` is internal and never serialized.
    """

    id: int | None = None
    event_type: str = ""
    notes: str = ""
    start_time: datetime | None = None
    end_time: NullableTimestamp = ABSENT
    metadata: JsonValue = None
    dry_run: bool = Field(default=False, exclude=True)

    @field_validator("start_time", mode="before")
    @classmethod
    def _start_time_unset(cls, v: Any) -> Any:
        if v is None:
            return None
        parsed = parse_timestamp(v)
        return None if is_zero_timestamp(parsed) else parsed

    def validate_and_rectify(self, id_generator: IdGenerator, now: datetime | None = None) -> "Event":
        """
        Validate required fields, then fix up what can be fixed silently.

        Order: reject empty ``event_type``, reject empty ``notes``, default
        ``start_time`` to now, clear an ``end_time`` that is not strictly
        after ``start_time``, assign a fresh ``id``. A rejected candidate is
        left untouched.

        Args:
            id_generator: Source of the new identifier
            now: Clock override for the ``start_time`` default

        Returns:
            The same event, ready for persistence

        Raises:
            EventValidationError: If a required field is empty or the event
                was already validated
        """
        if self.id is not None:
            raise EventValidationError("event has already been validated")
        if not self.event_type:
            raise EventValidationError("event_type parameter is required")
        if not self.notes:
            raise EventValidationError("notes parameter is required")

        if self.start_time is None:
            self.start_time = now or datetime.now(timezone.utc)

        if isinstance(self.end_time, Present) and not self.end_time.value > self.start_time:
            self.end_time = ABSENT

        self.id = id_generator.next_id()
        return self
