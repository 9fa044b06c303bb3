"""Shared fixtures: signing helpers and an app wired to in-memory collaborators."""
import hashlib
import hmac
import os
import time

os.environ.setdefault("SINK_BACKEND", "memory")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("SLACK_LOG_CHANNEL", "")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport

from event_tracker.api.deps import (
    get_github_verifier,
    get_notifier,
    get_recorder,
    get_slack_client,
    get_slack_verifier,
    get_sink,
)
from event_tracker.auth.github import GitHubSignatureVerifier
from event_tracker.auth.slack import SlackSignatureVerifier
from event_tracker.ids import RandomIdGenerator
from event_tracker.main import app
from event_tracker.notifications.notifier import SlackNotifier
from event_tracker.notifications.slack_client import SlackClient, SlackUser
from event_tracker.services.recorder import EventRecorder
from event_tracker.sinks.memory import InMemorySink

GITHUB_SECRET = b"github-test-secret"
SLACK_SECRET = b"slack-test-secret"


def github_headers(body: bytes, event: str = "push", secret: bytes = GITHUB_SECRET) -> dict:
    return {
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-Hub-Signature": "sha1=" + hmac.new(secret, body, hashlib.sha1).hexdigest(),
        "X-Hub-Signature-256": "sha256=" + hmac.new(secret, body, hashlib.sha256).hexdigest(),
    }


def slack_headers(body: bytes, timestamp: int | None = None, secret: bytes = SLACK_SECRET) -> dict:
    timestamp = int(time.time()) if timestamp is None else timestamp
    base = b"v0:" + str(timestamp).encode() + b":" + body
    return {
        "Content-Type": "application/x-www-form-urlencoded",
        "X-Slack-Request-Timestamp": str(timestamp),
        "X-Slack-Signature": "v0=" + hmac.new(secret, base, hashlib.sha256).hexdigest(),
    }


@pytest.fixture
def sink():
    return InMemorySink()


@pytest.fixture
def notifier():
    return MagicMock(spec=SlackNotifier)


@pytest.fixture
def slack_client():
    client = MagicMock(spec=SlackClient)
    client.users_info = AsyncMock(return_value=SlackUser(id="U123", name="alice", tz_offset=-18000))
    return client


@pytest.fixture
def recorder(sink, notifier):
    return EventRecorder(sink=sink, id_generator=RandomIdGenerator(seed=1234), notifier=notifier)


@pytest_asyncio.fixture
async def client(sink, recorder, notifier, slack_client):
    app.dependency_overrides[get_sink] = lambda: sink
    app.dependency_overrides[get_recorder] = lambda: recorder
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_slack_client] = lambda: slack_client
    app.dependency_overrides[get_github_verifier] = lambda: GitHubSignatureVerifier(GITHUB_SECRET)
    app.dependency_overrides[get_slack_verifier] = lambda: SlackSignatureVerifier(SLACK_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
