"""Tests for the event model, validate-and-rectify and nullable timestamps."""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import BaseModel, ValidationError

from event_tracker.errors import EventValidationError
from event_tracker.event_models import (
    ABSENT,
    Absent,
    Event,
    NullableTimestamp,
    Present,
    from_nullable_timestamp,
    is_known_event_type,
    parse_timestamp,
    to_nullable_timestamp,
)
from event_tracker.ids import MAX_EVENT_ID, RandomIdGenerator

START = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedIds:
    def __init__(self, value: int = 42):
        self.value = value

    def next_id(self) -> int:
        return self.value


def test_valid_event_gets_positive_id():
    event = Event(event_type="DEPLOYMENT", notes="v1.2.3 rollout")
    event.validate_and_rectify(RandomIdGenerator(seed=1))
    assert event.id is not None
    assert 1 <= event.id <= MAX_EVENT_ID


def test_injected_generator_controls_id():
    event = Event(event_type="DEPLOYMENT", notes="rollout")
    event.validate_and_rectify(FixedIds(99))
    assert event.id == 99


def test_seeded_generator_is_deterministic():
    first = RandomIdGenerator(seed=7)
    second = RandomIdGenerator(seed=7)
    assert [first.next_id() for _ in range(5)] == [second.next_id() for _ in range(5)]


@pytest.mark.parametrize("event_type,notes,message", [
    ("", "notes", "event_type parameter is required"),
    ("DEPLOYMENT", "", "notes parameter is required"),
    ("", "", "event_type parameter is required"),
])
def test_missing_required_fields_are_rejected(event_type, notes, message):
    event = Event(event_type=event_type, notes=notes, end_time=START)
    with pytest.raises(EventValidationError) as exc_info:
        event.validate_and_rectify(FixedIds())

    assert exc_info.value.error == message
    # A rejected candidate is left untouched
    assert event.id is None
    assert event.start_time is None
    assert event.end_time == Present(START)


def test_unset_start_time_defaults_to_now():
    before = datetime.now(timezone.utc)
    event = Event(event_type="MERGE", notes="merged").validate_and_rectify(FixedIds())
    after = datetime.now(timezone.utc)
    assert before <= event.start_time <= after


def test_zero_start_time_is_treated_as_unset():
    event = Event(event_type="MERGE", notes="merged", start_time="0001-01-01T00:00:00Z")
    assert event.start_time is None
    event.validate_and_rectify(FixedIds(), now=START)
    assert event.start_time == START


@pytest.mark.parametrize("end", [START, START - timedelta(seconds=1), START - timedelta(days=365)])
def test_end_time_not_after_start_is_cleared(end):
    event = Event(event_type="INCIDENT", notes="outage", start_time=START, end_time=end)
    event.validate_and_rectify(FixedIds())
    assert event.end_time == ABSENT


def test_end_time_after_start_is_kept():
    end = START + timedelta(minutes=30)
    event = Event(event_type="INCIDENT", notes="outage", start_time=START, end_time=end)
    event.validate_and_rectify(FixedIds())
    assert event.end_time == Present(end)


def test_end_time_compared_against_defaulted_start():
    # An end time in the past is dropped once start_time defaults to now
    event = Event(event_type="INCIDENT", notes="outage", end_time=START)
    event.validate_and_rectify(FixedIds(), now=START + timedelta(hours=1))
    assert event.end_time == ABSENT


def test_validation_runs_once():
    event = Event(event_type="DEPLOYMENT", notes="rollout").validate_and_rectify(FixedIds(1))
    with pytest.raises(EventValidationError):
        event.validate_and_rectify(FixedIds(2))
    assert event.id == 1


def test_event_serialization_excludes_dry_run():
    event = Event(event_type="DEPLOYMENT", notes="rollout", start_time=START, dry_run=True, metadata={"a": [1, 2]})
    data = event.model_dump(mode="json")
    assert "dry_run" not in data
    assert data["end_time"] is None
    assert data["metadata"] == {"a": [1, 2]}
    assert datetime.fromisoformat(data["start_time"]) == START


def test_recognized_event_types():
    assert is_known_event_type("DEPLOYMENT")
    assert is_known_event_type("PULL REQUEST")
    assert not is_known_event_type("deployment")


class Window(BaseModel):
    end_time: NullableTimestamp = ABSENT


@pytest.mark.parametrize("raw", [None, "0001-01-01T00:00:00Z", "0001-01-01T00:00:00+00:00"])
def test_null_and_zero_deserialize_to_absent(raw):
    assert to_nullable_timestamp(raw) == ABSENT
    assert Window.model_validate({"end_time": raw}).end_time == ABSENT


def test_missing_field_is_absent():
    assert Window.model_validate({}).end_time == ABSENT
    assert not Window().end_time


def test_present_value_parses_offset():
    value = Window.model_validate({"end_time": "2024-03-01T07:00:00-05:00"}).end_time
    assert isinstance(value, Present)
    assert value.value == START
    assert value.value.utcoffset() == timedelta(hours=-5)


def test_naive_timestamp_is_utc():
    value = to_nullable_timestamp("2024-03-01T12:00:00")
    assert value == Present(START)


def test_invalid_timestamp_is_rejected():
    with pytest.raises(ValidationError):
        Window.model_validate({"end_time": "not a time"})


@pytest.mark.parametrize("raw", ["0001-01-01T00:00:00+05:00", "9999-12-31T23:00:00-05:00"])
def test_out_of_range_instant_is_rejected(raw):
    with pytest.raises(ValueError):
        parse_timestamp(raw)
    with pytest.raises(ValidationError):
        Window.model_validate({"end_time": raw})
    with pytest.raises(ValidationError):
        Event(event_type="MERGE", notes="x", start_time=raw)


def test_serialization_rules():
    assert from_nullable_timestamp(ABSENT) is None
    assert from_nullable_timestamp(Present(START)) == "2024-03-01T12:00:00+00:00"
    assert Window(end_time=ABSENT).model_dump(mode="json") == {"end_time": None}
    assert Window.model_validate_json('{"end_time": null}').model_dump_json() == '{"end_time":null}'


@pytest.mark.parametrize("value", [ABSENT, Present(START), Present(datetime(2030, 1, 2, 3, 4, 5, 678000, tzinfo=timezone(timedelta(hours=5, minutes=30))))])
def test_round_trip(value):
    restored = to_nullable_timestamp(from_nullable_timestamp(value))
    assert restored == value
    assert isinstance(restored, (Absent, Present))
