"""Slack slash-command and interactivity endpoints."""
from datetime import datetime, timedelta, timezone

import orjson
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .deps import get_notifier, get_recorder, get_slack_client, verified_slack_body
from .schemas import envelope
from ..errors import EventValidationError
from ..notifications.notifier import SlackNotifier
from ..notifications.slack_client import SlackClient
from ..services.recorder import EventRecorder
from ..sources.slack import SlackCommandRequest, SlackInteractionPayload, incident_form

log = structlog.get_logger()

router = APIRouter(prefix="/api/v0/slack", dependencies=[Depends(verified_slack_body)])


@router.post("/command")
async def slack_command(
    request: Request,
    slack: SlackClient = Depends(get_slack_client),
):
    """Answer the slash command with the incident form, pre-filled in the user's timezone."""
    form = await request.form()
    command = SlackCommandRequest(command=form.get("command", ""), user_id=form.get("user_id", ""))

    user = await slack.users_info(command.user_id)
    now = datetime.now(timezone(timedelta(seconds=user.tz_offset)))
    log.info("slack.command", command=command.command, user_id=command.user_id)
    return JSONResponse(incident_form(now))


@router.post("/interaction")
async def slack_interaction(
    request: Request,
    slack: SlackClient = Depends(get_slack_client),
    recorder: EventRecorder = Depends(get_recorder),
    notifier: SlackNotifier = Depends(get_notifier),
):
    """
    Handle a submission of the incident form.

    The event is written (or traced, for a dry run) before the response is
    sent; the confirmation message to the user is posted afterwards.
    """
    form = await request.form()
    request_json = form.get("payload", "")
    if not request_json:
        raise EventValidationError("missing JSON payload")

    try:
        payload = SlackInteractionPayload.model_validate(orjson.loads(request_json))
    except (orjson.JSONDecodeError, ValidationError) as e:
        raise EventValidationError(str(e), message="invalid interaction payload")

    payload.validate_request()
    if not payload.is_submit():
        return envelope(200)

    user = await slack.users_info(payload.user.id)
    event = payload.parse_state(user.tz_offset)
    event = await recorder.record(event, source="slack.interaction", notify=False)

    notifier.announce_interaction(event, payload.user.id, payload.channel.id, payload.response_url)
    return envelope(200)
