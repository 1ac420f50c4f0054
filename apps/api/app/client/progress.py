"""Coarse processing progress derived from the persisted stage token."""

import math

# Ordered as the mixing pipeline persists them.
STAGE_VOCABULARY: tuple[str, ...] = (
    "start",
    "download:raw",
    "download:music:ok",
    "probe:music:ok",
    "synthesize:begin",
    "synthesize:ok",
    "ffmpeg:run",
    "ffmpeg:ok",
    "mux:create-upload",
    "mux:url",
    "mux:put",
    "done",
)

PROGRESS_FLOOR = 10
PROGRESS_CAP = 98
UNKNOWN_STAGE_PROGRESS = 15

_STAGE_LABELS: dict[str, str] = {
    "start": "Starting…",
    "download:raw": "Downloading media…",
    "download:music:ok": "Music ready",
    "probe:music:ok": "Analyzing audio…",
    "synthesize:begin": "Rendering frames…",
    "synthesize:ok": "Frames ready",
    "ffmpeg:run": "Mixing audio & video…",
    "ffmpeg:ok": "Mix complete",
    "mux:create-upload": "Creating upload slot…",
    "mux:url": "Preparing upload…",
    "mux:put": "Uploading video…",
    "mux:put:error": "Upload error",
    "done": "Finalizing…",
    "error": "Processing error",
}


def stage_progress(stage: str | None) -> int:
    """Percentage for an in-flight item; 100 is left for the ready transition."""
    if not stage:
        return PROGRESS_FLOOR
    if stage not in STAGE_VOCABULARY:
        return UNKNOWN_STAGE_PROGRESS
    index = STAGE_VOCABULARY.index(stage)
    pct = math.floor(100 * (index + 1) / len(STAGE_VOCABULARY) + 0.5)
    return max(PROGRESS_FLOOR, min(PROGRESS_CAP, pct))


def stage_label(stage: str | None) -> str:
    if not stage:
        return "Starting…"
    return _STAGE_LABELS.get(stage) or stage.replace(":", " ").replace("_", " ")
