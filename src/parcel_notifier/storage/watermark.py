"""
Watermark persistence for incremental polling.

The watermark is the delivery time of the newest message already handled.
It is stored as a single human-readable timestamp and read back with the
exact same format; anything else on disk is treated as corruption.
"""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from pathlib import Path
import re
from typing import List, Optional, Protocol

from parcel_notifier.logging import logger


#: First-run lookback: how far back the very first poll reaches.
DEFAULT_LOOKBACK = timedelta(hours=200)

#: strftime layout; the zone name is appended after the numeric offset.
_STAMP_FORMAT = "%Y-%m-%d %H:%M:%S %z"
_STAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4} \S.*")


class WatermarkError(Exception):
    """Raised when the watermark cannot be read, parsed or written."""
    pass


class WatermarkStore(Protocol):
    """Load / save interface for the single "last processed" timestamp."""
    def load(self) -> datetime: ...
    def save(self, watermark: datetime) -> None: ...


def default_watermark(
    lookback: timedelta = DEFAULT_LOOKBACK,
    now: Optional[datetime] = None,
) -> datetime:
    """
    Bootstrap watermark used when nothing has been persisted yet.

    Args:
        lookback: How far back from `now` the first run should look.
        now: Reference time (aware). Defaults to the current UTC time.

    Returns:
        `now - lookback`, truncated to whole seconds.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return (now - lookback).replace(microsecond=0)


def format_watermark(watermark: datetime) -> str:
    """
    Serialize a watermark as `YYYY-MM-DD HH:MM:SS +ZZZZ ZONE` in local time.

    Raises:
        WatermarkError: If the datetime is naive.
    """
    if watermark.tzinfo is None:
        raise WatermarkError("Watermark must be timezone-aware")
    local = watermark.astimezone().replace(microsecond=0)
    zone = local.tzname() or local.strftime("%z")
    return f"{local.strftime(_STAMP_FORMAT)} {zone}"


def parse_watermark(raw: str) -> datetime:
    """
    Parse a string produced by `format_watermark`.

    Surrounding whitespace is tolerated; any other deviation
    (fractional seconds, missing zone name, different layout) is not.

    Raises:
        WatermarkError: On any format mismatch.
    """
    text = raw.strip()
    if not _STAMP_RE.fullmatch(text):
        raise WatermarkError(f"Malformed watermark: {raw!r}")
    parts = text.split(" ", 3)
    if len(parts) != 4:
        raise WatermarkError(f"Malformed watermark: {raw!r}")
    try:
        return datetime.strptime(" ".join(parts[:3]), _STAMP_FORMAT)
    except ValueError as e:
        raise WatermarkError(f"Malformed watermark: {raw!r}") from e


class FileWatermarkStore:
    """
    Flat-file watermark store.

    A missing file is the expected first-run state and yields the lookback
    default. Every other read or parse problem is fatal: guessing a watermark
    could silently skip or re-send notifications.
    """

    def __init__(self, path: str | Path, lookback: timedelta = DEFAULT_LOOKBACK) -> None:
        self.path = Path(path)
        self.lookback = lookback

    def load(self) -> datetime:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            watermark = default_watermark(self.lookback)
            logger.info(
                f"[WATERMARK] No watermark file at {self.path}, "
                f"starting from lookback default {watermark.isoformat()}"
            )
            return watermark
        except (OSError, UnicodeDecodeError) as e:
            raise WatermarkError(f"Failed to read watermark file {self.path}: {e}") from e

        watermark = parse_watermark(raw)
        logger.info(f"[WATERMARK] Loaded {watermark.isoformat()} from {self.path}")
        return watermark

    def save(self, watermark: datetime) -> None:
        stamp = format_watermark(watermark)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(stamp, encoding="utf-8")
        except OSError as e:
            raise WatermarkError(f"Failed to write watermark file {self.path}: {e}") from e
        logger.info(f"[WATERMARK] Saved {stamp} to {self.path}")


class InMemoryWatermarkStore:
    """In-memory store for tests and dry runs; keeps every saved value."""

    def __init__(
        self,
        initial: Optional[datetime] = None,
        lookback: timedelta = DEFAULT_LOOKBACK,
    ) -> None:
        self._value = initial
        self.lookback = lookback
        self.saved: List[datetime] = []

    def load(self) -> datetime:
        if self._value is None:
            return default_watermark(self.lookback)
        return self._value

    def save(self, watermark: datetime) -> None:
        self._value = watermark
        self.saved.append(watermark)
