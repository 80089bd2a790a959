"""Authentication of inbound webhook requests.

A missing secret on our side counts as a failed check: unsigned
webhooks are never processed.
"""

import hmac
from collections.abc import Mapping

from slack_sdk.signature import SignatureVerifier


class InvalidSignatureError(Exception):
    """Raised when a webhook request fails authentication."""

    def __init__(self, source: str, reason: str = "Invalid signature"):
        self.source = source
        super().__init__(reason)


def verify_slack_request(
    body: bytes | str,
    headers: Mapping[str, str],
    signing_secret: str | None,
) -> None:
    """Check X-Slack-Signature (v0 HMAC-SHA256) and the 5-minute replay window.

    Raises:
        InvalidSignatureError: If the secret is unset or the signature fails
    """
    if not signing_secret:
        raise InvalidSignatureError("slack", "Slack signing secret not configured")
    verifier = SignatureVerifier(signing_secret)
    if not verifier.is_valid_request(body, {k.lower(): v for k, v in headers.items()}):
        raise InvalidSignatureError("slack")


def verify_gitlab_token(token: str | None, expected: str | None) -> None:
    """Check X-Gitlab-Token with a constant-time comparison.

    Raises:
        InvalidSignatureError: If the secret is unset or the token differs
    """
    if not expected:
        raise InvalidSignatureError("gitlab", "GitLab webhook secret not configured")
    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise InvalidSignatureError("gitlab", "Invalid token")
