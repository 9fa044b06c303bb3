"""GitHub webhook endpoint."""
import orjson
import structlog
from fastapi import APIRouter, Depends, Header

from .deps import get_recorder, verified_github_body
from .schemas import envelope
from ..auth.github import PULL_REQUEST_EVENT, PUSH_EVENT
from ..errors import EventValidationError
from ..services.recorder import EventRecorder
from ..sources.github import pull_request_event, push_event

log = structlog.get_logger()

router = APIRouter(prefix="/api/v0")

ADAPTERS = {
    PULL_REQUEST_EVENT: pull_request_event,
    PUSH_EVENT: push_event,
}


@router.post("/github")
async def github_webhook(
    body: bytes = Depends(verified_github_body),
    x_github_event: str = Header("", alias="X-GitHub-Event"),
    recorder: EventRecorder = Depends(get_recorder),
):
    """
    Receive a signed GitHub delivery.

    Merged pull requests and pushes to the main branch are recorded; other
    deliveries of a handled type are acknowledged and echoed back. Event types
    without an adapter get a 200 so GitHub does not retry them.
    """
    adapter = ADAPTERS.get(x_github_event)
    if adapter is None:
        return envelope(200, message=f"GitHub event '{x_github_event}' not yet handled")

    try:
        raw = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise EventValidationError(str(e), message="request body is not valid JSON")
    if not isinstance(raw, dict):
        raise EventValidationError("expected a JSON object", message="request body is not valid JSON")

    event = adapter(raw)
    if event is None:
        log.info("github.delivery_skipped", github_event=x_github_event)
        return envelope(200, data=raw)

    event = await recorder.record(event, source=f"github.{x_github_event}")
    return envelope(200, data=event.model_dump(mode="json"))
