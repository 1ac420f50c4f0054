"""Webhook signature scheme used by the transcoding service.

Header format: ``t=<unix seconds>,v1=<hex hmac-sha256>`` where the digest is
computed over ``"<t>.<raw body>"`` with the shared webhook secret.
"""

from __future__ import annotations

import hashlib
import hmac
import time

SIGNATURE_HEADER = "Mux-Signature"


class WebhookSignatureError(Exception):
    """Raised when a webhook signature header is missing, malformed or wrong."""


def _digest(raw_body: bytes, secret: str, timestamp: int) -> str:
    message = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign(raw_body: bytes, secret: str, *, timestamp: int | None = None) -> str:
    """Build a signature header value for ``raw_body``."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},v1={_digest(raw_body, secret, ts)}"


def _parse_header(header: str) -> tuple[int, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise WebhookSignatureError("Malformed signature timestamp") from exc
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed signature header")
    return timestamp, signatures


def verify(
    raw_body: bytes,
    header: str | None,
    secret: str,
    *,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> None:
    """Validate ``header`` against the raw request body or raise."""
    if not header:
        raise WebhookSignatureError("Missing signature header")

    timestamp, signatures = _parse_header(header)
    current = time.time() if now is None else now
    if tolerance_seconds and abs(current - timestamp) > tolerance_seconds:
        raise WebhookSignatureError("Signature timestamp outside tolerance")

    expected = _digest(raw_body, secret, timestamp)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("Signature mismatch")


__all__ = ["SIGNATURE_HEADER", "WebhookSignatureError", "sign", "verify"]
