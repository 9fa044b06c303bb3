"""Direct JSON API input."""
from datetime import datetime

from pydantic import BaseModel, JsonValue, field_validator

from ..event_models import ABSENT, Event, NullableTimestamp, parse_timestamp


class RecordRequest(BaseModel):
    """
    Body of ``POST /api/v0/record``.

    Any non-empty ``event_type`` is accepted. Unknown fields (including a
    caller-supplied ``id``) are ignored.
    """

    event_type: str = ""
    notes: str = ""
    start_time: datetime | None = None
    end_time: NullableTimestamp = ABSENT
    metadata: JsonValue = None

    @field_validator("start_time", mode="before")
    @classmethod
    def _start_time_in_range(cls, v):
        return None if v is None else parse_timestamp(v)

    def to_event(self) -> Event:
        return Event(
            event_type=self.event_type,
            notes=self.notes,
            start_time=self.start_time,
            end_time=self.end_time,
            metadata=self.metadata,
        )
