"""Signed OAuth `state` values carrying the initiating user."""

import base64
import hashlib
import hmac
import json
import time

STATE_TTL_SECONDS = 5 * 60


class InvalidStateError(Exception):
    """OAuth state failed to decode, verify or is too old."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid OAuth state: {reason}")


def _sign(payload: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def encode_state(user_id: str, secret: str, now: float | None = None) -> str:
    """Build `<base64 json>.<signature>` for the user."""
    issued_at = int((now if now is not None else time.time()) * 1000)
    payload = json.dumps({"user_id": user_id, "timestamp": issued_at}).encode()
    body = base64.urlsafe_b64encode(payload).decode().rstrip("=")
    return f"{body}.{_sign(payload, secret)}"


def decode_state(
    state: str,
    secret: str,
    now: float | None = None,
    ttl_seconds: int = STATE_TTL_SECONDS,
) -> str:
    """Verify a state value and return its user ID.

    Raises:
        InvalidStateError: If malformed, tampered with, or expired
    """
    try:
        body, signature = state.split(".", 1)
        payload = _b64decode(body)
        data = json.loads(payload)
        user_id, issued_at = data["user_id"], int(data["timestamp"])
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidStateError("malformed") from e

    if not hmac.compare_digest(signature.encode(), _sign(payload, secret).encode()):
        raise InvalidStateError("bad signature")

    current_ms = (now if now is not None else time.time()) * 1000
    if current_ms - issued_at > ttl_seconds * 1000:
        raise InvalidStateError("expired")
    return user_id
