"""
Redis-based watermark storage.

Keeps the watermark string under a single key so that containers without
a persistent volume still resume from the last processed message.
"""

from __future__ import annotations
from datetime import datetime, timedelta
import redis

from parcel_notifier.storage.watermark import (
    DEFAULT_LOOKBACK,
    WatermarkError,
    default_watermark,
    format_watermark,
    parse_watermark,
)
from parcel_notifier.logging import logger


class RedisWatermarkStore:
    """
    Redis-backed implementation of the WatermarkStore protocol.

    The stored value uses the same text format as the file store.
    A missing key is treated as the first run.
    """

    def __init__(
        self,
        key: str = "parcel_notifier:watermark",
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        lookback: timedelta = DEFAULT_LOOKBACK,
        client: redis.Redis | None = None,
    ) -> None:
        """
        Initialize Redis connection.

        Args:
            key: Redis key holding the watermark
            host: Redis server hostname
            port: Redis server port
            db: Redis database number
            lookback: First-run lookback window
            client: Pre-built client (tests); skips connection setup

        Raises:
            redis.ConnectionError: If connection to Redis fails
        """
        self.key = key
        self.lookback = lookback
        if client is not None:
            self.client = client
            return
        try:
            self.client = redis.Redis(
                host=host,
                port=port,
                db=db,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.client.ping()
            logger.info(f"Connected to Redis at {host}:{port}/{db}")
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def load(self) -> datetime:
        try:
            raw = self.client.get(self.key)
        except redis.RedisError as e:
            raise WatermarkError(f"Redis GET error for key '{self.key}': {e}") from e

        if raw is None:
            watermark = default_watermark(self.lookback)
            logger.info(
                f"[WATERMARK] No watermark under '{self.key}', "
                f"starting from lookback default {watermark.isoformat()}"
            )
            return watermark

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise WatermarkError(f"Watermark under '{self.key}' is not valid UTF-8: {e}") from e
        watermark = parse_watermark(raw)
        logger.info(f"[WATERMARK] Loaded {watermark.isoformat()} from Redis key '{self.key}'")
        return watermark

    def save(self, watermark: datetime) -> None:
        stamp = format_watermark(watermark)
        try:
            self.client.set(self.key, stamp)
        except redis.RedisError as e:
            raise WatermarkError(f"Redis SET error for key '{self.key}': {e}") from e
        logger.info(f"[WATERMARK] Saved {stamp} to Redis key '{self.key}'")
