"""Poll cycle orchestration."""

from parcel_notifier.pipeline.run import (
    PAGE_SIZE,
    PipelineError,
    advance,
    extract_matches,
    extract_message,
    is_stale,
    run_once,
    take_new,
)

__all__ = [
    "PAGE_SIZE",
    "PipelineError",
    "advance",
    "extract_matches",
    "extract_message",
    "is_stale",
    "run_once",
    "take_new",
]
