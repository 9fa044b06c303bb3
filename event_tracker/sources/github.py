"""Map GitHub webhook payloads onto events."""
from datetime import datetime
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ValidationError

from ..errors import EventValidationError
from ..event_models import Event, parse_timestamp

PULL_REQUEST_EVENT_TYPE = "PULL REQUEST"
PUSH_EVENT_TYPE = "PUSH"

M = TypeVar("M", bound=BaseModel)

# Out-of-range instants fail payload validation rather than event construction
Timestamp = Annotated[datetime | None, BeforeValidator(lambda v: None if v is None else parse_timestamp(v))]


class GitHubUser(BaseModel):
    login: str = ""


class PullRequest(BaseModel):
    html_url: str = ""
    merged: bool = False
    title: str = ""
    body: str | None = None
    updated_at: Timestamp = None
    user: GitHubUser = GitHubUser()


class PullRequestRepository(BaseModel):
    full_name: str = ""


class PullRequestPayload(BaseModel):
    """The fields of a ``pull_request`` delivery this service reads."""

    action: str = ""
    number: int = 0
    pull_request: PullRequest = PullRequest()
    repository: PullRequestRepository = PullRequestRepository()


class CommitAuthor(BaseModel):
    name: str = ""
    email: str = ""
    username: str = ""


class HeadCommit(BaseModel):
    message: str = ""
    timestamp: Timestamp = None
    url: str = ""
    author: CommitAuthor = CommitAuthor()
    committer: CommitAuthor = CommitAuthor()
    added: list[str] = []
    removed: list[str] = []
    modified: list[str] = []


class PushRepository(BaseModel):
    full_name: str = ""
    default_branch: str = ""
    master_branch: str = ""


class Pusher(BaseModel):
    name: str = ""
    email: str = ""


class PushPayload(BaseModel):
    """The fields of a ``push`` delivery this service reads."""

    ref: str = ""
    head_commit: HeadCommit | None = None
    repository: PushRepository = PushRepository()
    pusher: Pusher = Pusher()

    def targets_main_branch(self) -> bool:
        """True when the pushed ref is the repository's default (or master) branch."""
        branches = [self.repository.default_branch, self.repository.master_branch]
        return any(branch and branch in self.ref for branch in branches)


def parse_payload(model: type[M], raw: Any) -> M:
    """
    Validate a decoded webhook body.

    Raises:
        EventValidationError: If the body does not have the expected shape
    """
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise EventValidationError(str(e), message=f"invalid {model.__name__}")


def pull_request_event(raw: dict[str, Any]) -> Event | None:
    """
    Build an event for a merged pull request.

    Returns:
        The candidate event, or None for any delivery other than a
        ``closed`` action on a merged pull request
    """
    payload = parse_payload(PullRequestPayload, raw)
    if payload.action != "closed" or not payload.pull_request.merged:
        return None

    return Event(
        event_type=PULL_REQUEST_EVENT_TYPE,
        start_time=payload.pull_request.updated_at,
        notes=payload.pull_request.title,
        metadata=raw,
    )


def push_event(raw: dict[str, Any]) -> Event | None:
    """
    Build an event for a push to the main branch.

    Returns:
        The candidate event, or None for pushes to other refs and for
        deliveries without a head commit (branch deletion)
    """
    payload = parse_payload(PushPayload, raw)
    if payload.head_commit is None or not payload.targets_main_branch():
        return None

    return Event(
        event_type=PUSH_EVENT_TYPE,
        start_time=payload.head_commit.timestamp,
        notes=payload.head_commit.message,
        metadata=raw,
    )
