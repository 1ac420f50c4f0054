"""Media item lifecycle transition rules."""

from enum import Enum

from app.errors import ApiError
from app.schemas.media import MediaKind, MediaStatus, TransformMode


class Trigger(str, Enum):
    WEBHOOK_READY = "webhook_ready"
    WEBHOOK_NOOP = "webhook_noop"
    USER_DELETE = "user_delete"


IN_FLIGHT_STATES: frozenset[MediaStatus] = frozenset(
    {MediaStatus.PROCESSING, MediaStatus.MIXING, MediaStatus.UPLOADING}
)
TERMINAL_STATES: frozenset[MediaStatus] = frozenset({MediaStatus.READY, MediaStatus.FAILED})

# ``None`` stands for "no record": a ready webhook may recreate it.
_TRANSITIONS: dict[MediaStatus | None, dict[Trigger, MediaStatus | None]] = {
    None: {
        Trigger.WEBHOOK_READY: MediaStatus.READY,
        Trigger.WEBHOOK_NOOP: None,
    },
    MediaStatus.PROCESSING: {
        Trigger.WEBHOOK_READY: MediaStatus.READY,
        Trigger.WEBHOOK_NOOP: MediaStatus.PROCESSING,
        Trigger.USER_DELETE: MediaStatus.DELETED,
    },
    MediaStatus.MIXING: {
        Trigger.WEBHOOK_READY: MediaStatus.READY,
        Trigger.WEBHOOK_NOOP: MediaStatus.MIXING,
        Trigger.USER_DELETE: MediaStatus.DELETED,
    },
    MediaStatus.UPLOADING: {
        Trigger.WEBHOOK_READY: MediaStatus.READY,
        Trigger.WEBHOOK_NOOP: MediaStatus.UPLOADING,
        Trigger.USER_DELETE: MediaStatus.DELETED,
    },
    MediaStatus.READY: {
        Trigger.WEBHOOK_READY: MediaStatus.READY,
        Trigger.WEBHOOK_NOOP: MediaStatus.READY,
        Trigger.USER_DELETE: MediaStatus.DELETED,
    },
    MediaStatus.FAILED: {
        Trigger.WEBHOOK_NOOP: MediaStatus.FAILED,
        Trigger.USER_DELETE: MediaStatus.DELETED,
    },
    MediaStatus.DELETED: {
        Trigger.WEBHOOK_NOOP: MediaStatus.DELETED,
        Trigger.USER_DELETE: MediaStatus.DELETED,
    },
}


def is_terminal(status: MediaStatus | None) -> bool:
    return status in TERMINAL_STATES


def allowed_triggers(status: MediaStatus | None) -> list[Trigger]:
    """Return deterministically ordered triggers accepted in a status."""
    return sorted(_TRANSITIONS.get(status, {}), key=lambda t: t.value)


def can_apply(status: MediaStatus | None, trigger: Trigger) -> bool:
    return trigger in _TRANSITIONS.get(status, {})


def next_status(status: MediaStatus | None, trigger: Trigger) -> MediaStatus | None:
    """Resolve the status a trigger leads to, rejecting unlisted pairs."""
    if not can_apply(status, trigger):
        raise ApiError(
            status_code=409,
            code="FSM_TRANSITION_INVALID",
            message="Invalid media status transition",
            details={
                "current_status": status,
                "trigger": trigger.value,
                "allowed_triggers": [t.value for t in allowed_triggers(status)],
            },
        )
    return _TRANSITIONS[status][trigger]


def resolve_transform_mode(
    explicit: TransformMode | None,
    prior_kind: MediaKind | None,
) -> TransformMode:
    """Explicit mode wins; otherwise a photo item can only become video by promotion."""
    if explicit is not None:
        return explicit
    if prior_kind == MediaKind.PHOTO:
        return TransformMode.PHOTO_TO_VIDEO
    return TransformMode.PASSTHROUGH


def upgraded_media_kind(mode: TransformMode, prior_kind: MediaKind | None) -> MediaKind | None:
    """Return the kind to write after a successful transform, or None to leave it."""
    if mode == TransformMode.PHOTO_TO_VIDEO and prior_kind != MediaKind.VIDEO:
        return MediaKind.VIDEO
    return None
