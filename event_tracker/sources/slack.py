"""
Slack slash-command form and interactive submission handling.

The slash command answers with a Block Kit form; submitting that form sends
an interaction whose ``state.values`` are mapped onto an ``INCIDENT`` event.
"""
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel

from ..errors import EventValidationError
from ..event_models import Event, parse_timestamp, to_nullable_timestamp

INCIDENT_EVENT_TYPE = "INCIDENT"

SUBMIT_ACTION = "submit-button-action"
DESCRIPTION_ACTION = "description-action"
POSTMORTEM_ACTION = "postmortem-action"
START_DATE_ACTION = "start-date-action"
START_TIME_ACTION = "start-time-action"
END_DATE_ACTION = "end-date-action"
END_TIME_ACTION = "end-time-action"
CHECKBOX_ACTION = "checkbox-action"

# Checkbox option that turns a test submission into a real write
COMMIT_OPTION_VALUE = "value-0"


def _plain_text(text: str) -> dict[str, Any]:
    return {"type": "plain_text", "text": text, "emoji": True}


def _date_time_pickers(date_action: str, time_action: str, date: str, time: str) -> dict[str, Any]:
    return {
        "type": "actions",
        "elements": [
            {
                "type": "datepicker",
                "initial_date": date,
                "placeholder": _plain_text("Select a date"),
                "action_id": date_action,
            },
            {
                "type": "timepicker",
                "initial_time": time,
                "placeholder": _plain_text("Select time"),
                "action_id": time_action,
            },
        ],
    }


def incident_form(now: datetime) -> dict[str, Any]:
    """
    Build the incident form returned by the slash command.

    The start defaults to ``now``; the end defaults to the same time one year
    earlier, which is before the start and is therefore dropped on submit
    unless the user changes it.

    Args:
        now: Current time in the requesting user's timezone
    """
    start_date = now.strftime("%Y-%m-%d")
    end_date = (now - timedelta(days=365)).strftime("%Y-%m-%d")
    start_end_time = now.strftime("%H:%M")

    return {
        "blocks": [
            {
                "type": "section",
                "text": _plain_text("Record a site incident by filling out the following data."),
            },
            {"type": "section", "text": {"type": "mrkdwn", "text": "*Incident Start Date and Time*"}},
            _date_time_pickers(START_DATE_ACTION, START_TIME_ACTION, start_date, start_end_time),
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*Incident End Date and Time*\nLeave unchanged if incident should be considered instantaneous.",
                },
            },
            _date_time_pickers(END_DATE_ACTION, END_TIME_ACTION, end_date, start_end_time),
            {
                "type": "input",
                "element": {"type": "plain_text_input", "action_id": DESCRIPTION_ACTION},
                "label": _plain_text("Description of Incident"),
            },
            {
                "type": "input",
                "element": {"type": "plain_text_input", "action_id": POSTMORTEM_ACTION},
                "label": _plain_text("Link to Postmortem"),
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "checkboxes",
                        "options": [
                            {
                                "text": _plain_text("Do this for real"),
                                "description": _plain_text("Leave unchecked to test this action."),
                                "value": COMMIT_OPTION_VALUE,
                            }
                        ],
                        "action_id": CHECKBOX_ACTION,
                    },
                    {
                        "type": "button",
                        "text": _plain_text("Submit"),
                        "value": "click_me_123",
                        "action_id": SUBMIT_ACTION,
                    },
                ],
            },
        ]
    }


def format_tz_offset(offset_seconds: int) -> str:
    """
    Format a UTC offset in seconds as ``±HH:MM``.

    The magnitude is rounded to the nearest minute, halves away from zero;
    the sign comes from the unrounded offset.
    """
    sign = "-" if offset_seconds < 0 else "+"
    total_minutes = (abs(offset_seconds) + 30) // 60
    hours, minutes = divmod(total_minutes, 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def local_timestamp(date: str, time: str, offset_seconds: int) -> str:
    """RFC 3339 text for a picker date (YYYY-MM-DD) and time (HH:MM) in the user's offset."""
    return f"{date}T{time}:00{format_tz_offset(offset_seconds)}"


class SlackCommandRequest(BaseModel):
    command: str = ""
    user_id: str = ""


class InteractionUser(BaseModel):
    id: str = ""
    name: str = ""


class InteractionAction(BaseModel):
    action_id: str = ""


class InteractionState(BaseModel):
    values: dict[str, Any] = {}


class InteractionChannel(BaseModel):
    id: str = ""


class SlackInteractionPayload(BaseModel):
    """Partial representation of a ``block_actions`` interaction payload."""

    type: str = ""
    user: InteractionUser = InteractionUser()
    actions: list[InteractionAction] = []
    state: InteractionState = InteractionState()
    response_url: str = ""
    channel: InteractionChannel = InteractionChannel()

    def validate_request(self) -> None:
        """
        Enforce the minimum a submission needs.

        Raises:
            EventValidationError: On a missing action, response URL or channel
        """
        if not self.actions:
            raise EventValidationError("Must have at least one action")
        if not self.response_url:
            raise EventValidationError("Request is missing the response_url")
        if not self.channel.id:
            raise EventValidationError("Request is missing the channel id")

    def is_submit(self) -> bool:
        return bool(self.actions) and self.actions[0].action_id == SUBMIT_ACTION

    def parse_state(self, tz_offset_seconds: int) -> Event:
        """
        Turn the submitted form state into a candidate ``INCIDENT`` event.

        The event is a dry run unless the commit checkbox was ticked.

        Args:
            tz_offset_seconds: The submitting user's UTC offset

        Raises:
            EventValidationError: If a form value has the wrong shape or the
                dates and times do not form a timestamp
        """
        event = Event(event_type=INCIDENT_EVENT_TYPE, dry_run=True)
        fields = {
            DESCRIPTION_ACTION: ("value", "Bad description"),
            POSTMORTEM_ACTION: ("value", "Bad postmortem"),
            START_DATE_ACTION: ("selected_date", "Bad start date"),
            START_TIME_ACTION: ("selected_time", "Bad start time"),
            END_DATE_ACTION: ("selected_date", "Bad end date"),
            END_TIME_ACTION: ("selected_time", "Bad end time"),
        }
        values = {action: "" for action in fields}

        for block in self.state.values.values():
            if not isinstance(block, dict):
                raise EventValidationError("Bad block object")

            for action_name, value in block.items():
                if not isinstance(value, dict):
                    raise EventValidationError("Bad action object")

                if action_name in fields:
                    key, error = fields[action_name]
                    if not isinstance(value.get(key), str):
                        raise EventValidationError(error)
                    values[action_name] = value[key]
                elif action_name == CHECKBOX_ACTION:
                    if _commit_selected(value):
                        event.dry_run = False

        event.notes = values[DESCRIPTION_ACTION]

        try:
            event.start_time = parse_timestamp(
                local_timestamp(values[START_DATE_ACTION], values[START_TIME_ACTION], tz_offset_seconds)
            )
        except ValueError:
            raise EventValidationError("Bad start date and/or time")

        try:
            event.end_time = to_nullable_timestamp(
                local_timestamp(values[END_DATE_ACTION], values[END_TIME_ACTION], tz_offset_seconds)
            )
        except ValueError as e:
            raise EventValidationError(f"Failed to parse timestamp for end time: {e}")

        event.metadata = {"postmortem": values[POSTMORTEM_ACTION]}
        return event


def _commit_selected(value: dict[str, Any]) -> bool:
    selected_options = value.get("selected_options")
    if not isinstance(selected_options, list):
        raise EventValidationError("Bad checkbox selected options")

    for option in selected_options:
        if not isinstance(option, dict):
            raise EventValidationError("Bad checkbox option")
        option_value = option.get("value")
        if not isinstance(option_value, str):
            raise EventValidationError("Bad checkbox option value")
        if option_value == COMMIT_OPTION_VALUE:
            return True
    return False
