"""
Paddle webhook signature verification.

Paddle signs every notification with HMAC-SHA256 over ``"{ts}:{raw_body}"``
using the notification destination's secret, and sends the result in the
``Paddle-Signature`` header as ``ts=1671552777;h1=eb4d0dc8...``.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class WebhookSignatureError(Exception):
    """Raised when a webhook signature header can't be verified"""


def parse_signature_header(header: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Split ``ts=...;h1=...`` into (timestamp, hash). Missing parts come back as None."""
    parts = {}
    for chunk in (header or "").split(";"):
        key, sep, value = chunk.strip().partition("=")
        if sep:
            parts[key] = value
    return parts.get("ts") or None, parts.get("h1") or None


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    payload = timestamp.encode("utf-8") + b":" + raw_body
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_paddle_signature(raw_body: bytes, header: Optional[str], secret: Optional[str],
                            max_age_seconds: int = 0, now: Optional[float] = None) -> None:
    """
    Raises WebhookSignatureError unless ``header`` is a valid signature of ``raw_body``.

    max_age_seconds > 0 also rejects timestamps older (or newer) than that many seconds.
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")

    timestamp, received = parse_signature_header(header)
    if not timestamp or not received:
        raise WebhookSignatureError("Malformed signature header")

    expected = compute_signature(secret, timestamp, raw_body)
    if not hmac.compare_digest(expected, received.lower()):
        raise WebhookSignatureError("Signature mismatch")

    if max_age_seconds > 0:
        try:
            age = abs((now if now is not None else time.time()) - int(timestamp))
        except ValueError:
            raise WebhookSignatureError("Invalid signature timestamp")
        if age > max_age_seconds:
            logger.warning("Paddle webhook timestamp too old: %ss (max %ss)", int(age), max_age_seconds)
            raise WebhookSignatureError("Signature timestamp outside tolerance")


def is_valid_paddle_signature(raw_body: bytes, header: Optional[str], secret: Optional[str],
                              max_age_seconds: int = 0) -> bool:
    try:
        verify_paddle_signature(raw_body, header, secret, max_age_seconds)
    except WebhookSignatureError as exc:
        logger.warning("Paddle webhook rejected: %s", exc)
        return False
    return True
