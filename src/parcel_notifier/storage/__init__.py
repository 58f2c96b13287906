"""Watermark storage backends."""

from parcel_notifier.storage.watermark import (
    DEFAULT_LOOKBACK,
    FileWatermarkStore,
    InMemoryWatermarkStore,
    WatermarkError,
    WatermarkStore,
    default_watermark,
    format_watermark,
    parse_watermark,
)

__all__ = [
    "DEFAULT_LOOKBACK",
    "FileWatermarkStore",
    "InMemoryWatermarkStore",
    "WatermarkError",
    "WatermarkStore",
    "default_watermark",
    "format_watermark",
    "parse_watermark",
]
