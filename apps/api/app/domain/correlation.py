"""Correlation payload carried through the transcoder as opaque passthrough.

The transcoder echoes the passthrough string back verbatim on every asset
event but refuses values longer than 255 bytes, so the encoder shrinks the
identifiers (never the JSON framing) until the UTF-8 form fits.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Callable

MAX_PASSTHROUGH_BYTES = 255

_ITEM_KEYS = ("itemId", "deedId", "docId")
_OWNER_KEYS = ("ownerId", "uid")


@dataclass(frozen=True, slots=True)
class StructuredCorrelation:
    item_id: str
    owner_id: str | None = None


@dataclass(frozen=True, slots=True)
class PlainCorrelation:
    item_id: str
    owner_id: None = None


@dataclass(frozen=True, slots=True)
class NoCorrelation:
    item_id: None = None
    owner_id: None = None


CorrelationPayload = StructuredCorrelation | PlainCorrelation | NoCorrelation

NO_CORRELATION = NoCorrelation()


def _serialize(item_id: str, owner_id: str | None) -> str:
    body: dict[str, str] = {"itemId": item_id}
    if owner_id is not None:
        body["ownerId"] = owner_id
    return json.dumps(body, ensure_ascii=False, separators=(",", ":"))


def _fits(text: str) -> bool:
    return len(text.encode("utf-8")) <= MAX_PASSTHROUGH_BYTES


def _longest_fitting_prefix(value: str, render: Callable[[str], str]) -> int | None:
    """Largest code-point count of ``value`` whose rendering fits, or None."""
    if not _fits(render("")):
        return None
    low, high = 0, len(value)
    while low < high:
        mid = (low + high + 1) // 2
        if _fits(render(value[:mid])):
            low = mid
        else:
            high = mid - 1
    return low


def encode(item_id: str, owner_id: str | None = None) -> str:
    """Serialize a correlation payload that always fits the passthrough limit.

    ``owner_id`` is shortened (and finally dropped) before ``item_id`` is
    touched. Truncation works on whole code points so multi-byte characters
    are never split.
    """
    if not item_id:
        raise ValueError("item_id is required")
    owner_id = owner_id or None

    full = _serialize(item_id, owner_id)
    if _fits(full):
        return full

    if owner_id:
        keep = _longest_fitting_prefix(owner_id, lambda owner: _serialize(item_id, owner))
        if keep:
            return _serialize(item_id, owner_id[:keep])

    bare = _serialize(item_id, None)
    if _fits(bare):
        return bare

    # An empty itemId always fits, so a prefix length is always found.
    keep = _longest_fitting_prefix(item_id, lambda item: _serialize(item, None)) or 0
    return _serialize(item_id[:keep], None)


def _first_text(payload: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
    return None


def decode(raw: Any) -> CorrelationPayload:
    """Best-effort decode: structured JSON, then plain string, then none."""
    if not isinstance(raw, str):
        return NO_CORRELATION
    text = raw.strip()
    if not text:
        return NO_CORRELATION

    try:
        parsed = json.loads(text)
    except ValueError:
        # Broken JSON framing is malformed, not a bare identifier.
        if text.startswith(("{", "[", '"')):
            return NO_CORRELATION
        return PlainCorrelation(item_id=text)

    if isinstance(parsed, dict):
        item_id = _first_text(parsed, _ITEM_KEYS)
        if item_id is None:
            return NO_CORRELATION
        return StructuredCorrelation(item_id=item_id, owner_id=_first_text(parsed, _OWNER_KEYS))
    if isinstance(parsed, str):
        return PlainCorrelation(item_id=parsed.strip()) if parsed.strip() else NO_CORRELATION
    if isinstance(parsed, list):
        return NO_CORRELATION
    # Bare numbers and JSON literals are unframed text.
    return PlainCorrelation(item_id=text)


def encode_passthrough(passthrough: dict[str, Any] | str | None) -> str | None:
    """Normalize a caller-supplied passthrough object into the encoded form."""
    if passthrough is None:
        return None
    if isinstance(passthrough, str):
        correlation = decode(passthrough)
    else:
        item_id = _first_text(passthrough, _ITEM_KEYS)
        correlation = (
            StructuredCorrelation(item_id=item_id, owner_id=_first_text(passthrough, _OWNER_KEYS))
            if item_id
            else NO_CORRELATION
        )
    if isinstance(correlation, NoCorrelation):
        return None
    return encode(correlation.item_id, correlation.owner_id)
