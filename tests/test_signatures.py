"""Tests for GitHub and Slack signature verification."""
import time

import pytest

from conftest import GITHUB_SECRET, SLACK_SECRET, github_headers, slack_headers
from event_tracker.auth.github import GitHubSignatureVerifier
from event_tracker.auth.slack import SlackSignatureVerifier
from event_tracker.errors import SignatureError

BODY = b'{"ref": "refs/heads/main", "zen": "Keep it logically awesome."}'


@pytest.fixture
def github():
    return GitHubSignatureVerifier(GITHUB_SECRET)


@pytest.fixture
def slack():
    return SlackSignatureVerifier(SLACK_SECRET)


def flip_last_hex(signature: str) -> str:
    last = signature[-1]
    return signature[:-1] + ("0" if last != "0" else "1")


class TestGitHubSignatureVerifier:
    def test_accepts_correctly_signed_delivery(self, github):
        github.verify(github_headers(BODY), BODY)

    def test_accepts_unhandled_event_type(self, github):
        # Unknown event types are logged, not rejected
        github.verify(github_headers(BODY, event="issues"), BODY)

    def test_secret_may_be_text(self):
        GitHubSignatureVerifier(GITHUB_SECRET.decode()).verify(github_headers(BODY), BODY)

    def test_rejects_modified_body(self, github):
        headers = github_headers(BODY)
        tampered = BODY.replace(b"main", b"mainx")
        with pytest.raises(SignatureError) as exc_info:
            github.verify(headers, tampered)
        assert exc_info.value.error == "Invalid SHA1 signature"

    def test_rejects_wrong_secret(self, github):
        headers = github_headers(BODY, secret=b"other-secret")
        with pytest.raises(SignatureError):
            github.verify(headers, BODY)

    @pytest.mark.parametrize("header,message", [
        ("X-Hub-Signature", "Invalid SHA1 signature"),
        ("X-Hub-Signature-256", "Invalid SHA256 signature"),
    ])
    def test_rejects_flipped_signature(self, github, header, message):
        headers = github_headers(BODY)
        headers[header] = flip_last_hex(headers[header])
        with pytest.raises(SignatureError) as exc_info:
            github.verify(headers, BODY)
        assert exc_info.value.error == message

    @pytest.mark.parametrize("header", ["X-Hub-Signature", "X-Hub-Signature-256"])
    def test_rejects_missing_header(self, github, header):
        headers = github_headers(BODY)
        del headers[header]
        with pytest.raises(SignatureError) as exc_info:
            github.verify(headers, BODY)
        assert exc_info.value.error == f'Missing "{header}" header'

    def test_rejects_wrong_prefix(self, github):
        headers = github_headers(BODY)
        headers["X-Hub-Signature"] = "md5=" + headers["X-Hub-Signature"][len("sha1="):]
        with pytest.raises(SignatureError):
            github.verify(headers, BODY)

    def test_rejects_wrong_length(self, github):
        headers = github_headers(BODY)
        headers["X-Hub-Signature-256"] = headers["X-Hub-Signature-256"][:-2]
        with pytest.raises(SignatureError):
            github.verify(headers, BODY)

    def test_rejects_non_hex_digest(self, github):
        headers = github_headers(BODY)
        headers["X-Hub-Signature"] = "sha1=" + "z" * 40
        assert not github.verify_sha1(headers["X-Hub-Signature"], BODY)


FORM = b"command=%2Fincident&user_id=U123&team_id=T1"


class TestSlackSignatureVerifier:
    def test_accepts_recent_request(self, slack):
        now = time.time()
        slack.verify(slack_headers(FORM, timestamp=int(now) - 60), FORM, now=now)

    def test_rejects_request_older_than_five_minutes(self, slack):
        now = time.time()
        headers = slack_headers(FORM, timestamp=int(now) - 360)
        with pytest.raises(SignatureError) as exc_info:
            slack.verify(headers, FORM, now=now)
        assert exc_info.value.error.startswith("Request is too old")

    @pytest.mark.parametrize("timestamp", [-10**15, -1, 0])
    def test_rejects_out_of_range_timestamp(self, slack, timestamp):
        headers = slack_headers(FORM, timestamp=timestamp)
        with pytest.raises(SignatureError) as exc_info:
            slack.verify(headers, FORM)
        assert exc_info.value.error.startswith("Request is too old")

    def test_max_age_is_configurable(self):
        verifier = SlackSignatureVerifier(SLACK_SECRET, max_age_seconds=30)
        now = time.time()
        with pytest.raises(SignatureError):
            verifier.verify(slack_headers(FORM, timestamp=int(now) - 60), FORM, now=now)

    def test_sign_matches_verify(self, slack):
        timestamp = str(int(time.time()))
        headers = {
            "X-Slack-Request-Timestamp": timestamp,
            "X-Slack-Signature": slack.sign(timestamp, FORM),
        }
        slack.verify(headers, FORM)
        assert headers["X-Slack-Signature"] == slack_headers(FORM, timestamp=int(timestamp))["X-Slack-Signature"]

    def test_rejects_modified_body(self, slack):
        headers = slack_headers(FORM)
        with pytest.raises(SignatureError) as exc_info:
            slack.verify(headers, FORM + b"&extra=1")
        assert exc_info.value.error == "Invalid SHA256 signature"

    def test_rejects_flipped_signature(self, slack):
        headers = slack_headers(FORM)
        headers["X-Slack-Signature"] = flip_last_hex(headers["X-Slack-Signature"])
        with pytest.raises(SignatureError):
            slack.verify(headers, FORM)

    def test_rejects_signature_without_version(self, slack):
        headers = slack_headers(FORM)
        headers["X-Slack-Signature"] = headers["X-Slack-Signature"].replace("=", "", 1)
        with pytest.raises(SignatureError) as exc_info:
            slack.verify(headers, FORM)
        assert exc_info.value.error.startswith("Invalid signature format")

    def test_rejects_non_numeric_timestamp(self, slack):
        headers = slack_headers(FORM)
        headers["X-Slack-Request-Timestamp"] = "yesterday"
        with pytest.raises(SignatureError) as exc_info:
            slack.verify(headers, FORM)
        assert exc_info.value.error == "Invalid timestamp: yesterday"

    @pytest.mark.parametrize("header", ["X-Slack-Signature", "X-Slack-Request-Timestamp"])
    def test_rejects_missing_header(self, slack, header):
        headers = slack_headers(FORM)
        del headers[header]
        with pytest.raises(SignatureError) as exc_info:
            slack.verify(headers, FORM)
        assert exc_info.value.error == f'Missing "{header}" header'
