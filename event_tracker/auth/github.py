"""GitHub webhook signature verification."""
import hashlib
import hmac
from typing import Mapping

import structlog

from ..errors import SignatureError

log = structlog.get_logger()

SIGNATURE_SHA1_HEADER = "X-Hub-Signature"
SIGNATURE_SHA256_HEADER = "X-Hub-Signature-256"
GITHUB_EVENT_HEADER = "X-GitHub-Event"
GITHUB_DELIVERY_HEADER = "X-GitHub-Delivery"

PULL_REQUEST_EVENT = "pull_request"
PUSH_EVENT = "push"
PING_EVENT = "ping"

HANDLED_EVENTS = frozenset({PULL_REQUEST_EVENT, PUSH_EVENT, PING_EVENT})


class GitHubSignatureVerifier:
    """
    Verifies both signatures GitHub attaches to a webhook delivery.

    ``X-Hub-Signature`` carries ``sha1=<hex>`` and ``X-Hub-Signature-256``
    carries ``sha256=<hex>``, each an HMAC of the raw body keyed with the
    shared webhook secret. Both must verify.
    """

    def __init__(self, secret: bytes | str):
        self._secret = secret.encode() if isinstance(secret, str) else secret

    def _verify(self, signature: str, body: bytes, prefix: str, digestmod) -> bool:
        expected_length = len(prefix) + digestmod().digest_size * 2
        if len(signature) != expected_length or not signature.startswith(prefix):
            return False

        try:
            actual = bytes.fromhex(signature[len(prefix):])
        except ValueError:
            return False

        computed = hmac.new(self._secret, body, digestmod).digest()
        return hmac.compare_digest(computed, actual)

    def verify_sha1(self, signature: str, body: bytes) -> bool:
        return self._verify(signature, body, "sha1=", hashlib.sha1)

    def verify_sha256(self, signature: str, body: bytes) -> bool:
        return self._verify(signature, body, "sha256=", hashlib.sha256)

    def verify(self, headers: Mapping[str, str], body: bytes) -> None:
        """
        Check a delivery's headers against its raw body.

        Args:
            headers: Request headers (case-insensitive mapping)
            body: Exact bytes of the request body

        Raises:
            SignatureError: If a signature header is missing, malformed or
                does not match
        """
        signature_sha1 = headers.get(SIGNATURE_SHA1_HEADER, "")
        signature_sha256 = headers.get(SIGNATURE_SHA256_HEADER, "")

        if not signature_sha1:
            raise SignatureError(f'Missing "{SIGNATURE_SHA1_HEADER}" header')
        if not signature_sha256:
            raise SignatureError(f'Missing "{SIGNATURE_SHA256_HEADER}" header')

        if not self.verify_sha1(signature_sha1, body):
            raise SignatureError("Invalid SHA1 signature")
        if not self.verify_sha256(signature_sha256, body):
            raise SignatureError("Invalid SHA256 signature")

        github_event = headers.get(GITHUB_EVENT_HEADER, "")
        if github_event not in HANDLED_EVENTS:
            log.info(
                "github.event_unhandled",
                github_event=github_event,
                delivery=headers.get(GITHUB_DELIVERY_HEADER),
            )
