"""Shared service instances and request-authentication dependencies."""
from functools import lru_cache
from zoneinfo import ZoneInfo

import structlog
from fastapi import Depends, Request

from ..auth.github import GitHubSignatureVerifier
from ..auth.slack import SlackSignatureVerifier
from ..config import get_settings
from ..errors import SignatureError
from ..ids import RandomIdGenerator
from ..metrics import get_metrics
from ..notifications.notifier import SlackNotifier
from ..notifications.slack_client import SlackClient
from ..services.recorder import EventRecorder
from ..sinks.base import EventSink
from ..sinks.memory import InMemorySink
from ..sinks.sql import SqlEventSink

log = structlog.get_logger()


@lru_cache(maxsize=1)
def get_sink() -> EventSink:
    """
    Create the sink selected by the SINK_BACKEND setting.

    Returns:
        EventSink instance shared by all requests
    """
    settings = get_settings()
    if settings.SINK_BACKEND == "memory":
        log.info("sink.selected", type="memory", dry_run=settings.DRY_RUN)
        return InMemorySink(dry_run=settings.DRY_RUN)

    log.info("sink.selected", type="sql", dry_run=settings.DRY_RUN)
    return SqlEventSink(settings.DATABASE_URL, dry_run=settings.DRY_RUN)


@lru_cache(maxsize=1)
def get_slack_client() -> SlackClient:
    settings = get_settings()
    return SlackClient(
        settings.SLACK_OAUTH_TOKEN,
        api_url=settings.SLACK_API_URL,
        timeout=settings.SLACK_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_notifier() -> SlackNotifier:
    settings = get_settings()
    return SlackNotifier(
        get_slack_client(),
        log_channel=settings.SLACK_LOG_CHANNEL,
        tz=ZoneInfo(settings.TIME_ZONE),
        metrics=get_metrics(),
    )


@lru_cache(maxsize=1)
def get_recorder() -> EventRecorder:
    return EventRecorder(
        sink=get_sink(),
        id_generator=RandomIdGenerator(get_settings().ID_SEED),
        notifier=get_notifier(),
        metrics=get_metrics(),
    )


@lru_cache(maxsize=1)
def get_github_verifier() -> GitHubSignatureVerifier:
    return GitHubSignatureVerifier(get_settings().GITHUB_SECRET)


@lru_cache(maxsize=1)
def get_slack_verifier() -> SlackSignatureVerifier:
    settings = get_settings()
    return SlackSignatureVerifier(
        settings.SLACK_SIGNING_SECRET,
        max_age_seconds=settings.SLACK_REQUEST_MAX_AGE_SECONDS,
    )


async def verified_github_body(
    request: Request,
    verifier: GitHubSignatureVerifier = Depends(get_github_verifier),
) -> bytes:
    """
    Dependency that authenticates a GitHub delivery before its handler runs.

    The body stays cached on the request, so the handler can read it again.

    Returns:
        The raw, verified request body

    Raises:
        SignatureError: If verification fails (rendered as 400)
    """
    body = await request.body()
    try:
        verifier.verify(request.headers, body)
    except SignatureError as e:
        log.warning("signature.rejected", verifier="github", error=e.error)
        get_metrics().record_signature_failure("github")
        raise
    return body


async def verified_slack_body(
    request: Request,
    verifier: SlackSignatureVerifier = Depends(get_slack_verifier),
) -> bytes:
    """
    Dependency that authenticates a Slack request before its handler runs.

    Returns:
        The raw, verified request body

    Raises:
        SignatureError: If verification fails (rendered as 400)
    """
    body = await request.body()
    try:
        verifier.verify(request.headers, body)
    except SignatureError as e:
        log.warning("signature.rejected", verifier="slack", error=e.error)
        get_metrics().record_signature_failure("slack")
        raise
    return body
