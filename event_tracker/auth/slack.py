"""Slack request signature verification."""
import hashlib
import hmac
import time
from datetime import datetime, timezone
from typing import Mapping

from ..errors import SignatureError

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"

DEFAULT_MAX_AGE_SECONDS = 300


def _epoch_text(seconds: float) -> str:
    """ISO rendering of an epoch time, or the raw number when out of range."""
    try:
        return datetime.fromtimestamp(seconds, timezone.utc).isoformat()
    except (ValueError, OverflowError, OSError):
        return str(seconds)


class SlackSignatureVerifier:
    """
    Verifies Slack's ``v0`` request signing scheme.

    The signature header is ``<version>=<hex>`` where the hex digest is the
    HMAC-SHA256 of ``"<version>:<timestamp>:<raw body>"`` keyed with the app's
    signing secret. Requests older than ``max_age_seconds`` are refused so a
    captured request cannot be replayed later.
    """

    def __init__(self, secret: bytes | str, max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS):
        self._secret = secret.encode() if isinstance(secret, str) else secret
        self.max_age_seconds = max_age_seconds

    def sign(self, timestamp: str, body: bytes, version: str = "v0") -> str:
        """Build the signature header value for a request body."""
        base = b":".join([version.encode(), timestamp.encode(), body])
        return f"{version}={hmac.new(self._secret, base, hashlib.sha256).hexdigest()}"

    def verify(self, headers: Mapping[str, str], body: bytes, now: float | None = None) -> None:
        """
        Check a request's signature and timestamp headers.

        Args:
            headers: Request headers (case-insensitive mapping)
            body: Exact bytes of the form-encoded request body
            now: Clock override, seconds since the epoch

        Raises:
            SignatureError: On a missing or malformed header, an expired
                timestamp or a signature mismatch
        """
        signature_with_prefix = headers.get(SLACK_SIGNATURE_HEADER, "")
        if not signature_with_prefix:
            raise SignatureError(f'Missing "{SLACK_SIGNATURE_HEADER}" header')

        version, sep, signature = signature_with_prefix.partition("=")
        if not sep:
            raise SignatureError(f'Invalid signature format "{signature_with_prefix}"')

        timestamp_string = headers.get(SLACK_TIMESTAMP_HEADER, "")
        if not timestamp_string:
            raise SignatureError(f'Missing "{SLACK_TIMESTAMP_HEADER}" header')

        try:
            timestamp = int(timestamp_string)
        except ValueError:
            raise SignatureError(f"Invalid timestamp: {timestamp_string}")

        now = time.time() if now is None else now
        if timestamp < now - self.max_age_seconds:
            raise SignatureError(
                f"Request is too old (timestamp = {_epoch_text(timestamp)}, now = {_epoch_text(now)})"
            )

        try:
            actual = bytes.fromhex(signature)
        except ValueError:
            raise SignatureError("Invalid SHA256 signature")

        base = b":".join([version.encode(), timestamp_string.encode(), body])
        computed = hmac.new(self._secret, base, hashlib.sha256).digest()
        if not hmac.compare_digest(computed, actual):
            raise SignatureError("Invalid SHA256 signature")
