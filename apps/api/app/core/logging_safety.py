"""Utilities for safe structured logging fields."""

from __future__ import annotations

import hashlib
from typing import Any


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for log correlation fields."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def safe_log_locator(locator: str | None) -> str:
    """Keep the storage scheme visible while hiding bucket and object path."""
    if not locator:
        return "loc-missing"
    scheme, sep, _ = locator.partition("://")
    kind = scheme if sep else "path"
    return safe_log_identifier(locator, prefix=f"loc-{kind}")
