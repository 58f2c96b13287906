"""
Configuration management with validation and storage backend selection.
"""

from __future__ import annotations
import os
from datetime import timedelta
from pathlib import Path
from typing import TypedDict

from dotenv import load_dotenv
from googleapiclient.discovery import build

from parcel_notifier.auth import ensure_valid_credentials, TokenExpiredError
from parcel_notifier.gmail.client import GmailClient
from parcel_notifier.logging import logger
from parcel_notifier.notify.slack import DEFAULT_USERNAME, SlackWebhookNotifier
from parcel_notifier.storage.watermark import FileWatermarkStore, WatermarkStore


_TRUTHY = ("true", "1", "yes")


class Config(TypedDict):
    """Typed configuration dictionary."""
    GMAIL_TOKEN: str
    GMAIL_SCOPES: list[str]
    AUTO_REAUTHORIZE: bool
    SLACK_WEBHOOK_URL: str
    NOTIFIER_USERNAME: str
    HTTP_TIMEOUT: float
    WATERMARK_FILE: str
    WATERMARK_LOOKBACK_HOURS: int
    WATERMARK_KEY: str
    USE_REDIS: bool
    REDIS_HOST: str
    REDIS_PORT: int
    REDIS_DB: int
    LOG_LEVEL: str
    LOG_FILE: str | None
    SCHEDULER_INTERVAL: int


def _load_env() -> Config:
    """
    Load environment variables (and .env if present) and return validated configuration.

    Required vars:
      - GOOGLE_GMAIL_TOKEN (authorized user file)
      - SLACK_WEBHOOK_URL

    Optional vars with defaults:
      - GOOGLE_GMAIL_SCOPES (default: gmail.readonly)
      - AUTO_REAUTHORIZE (default: "false")
      - NOTIFIER_USERNAME (default: "YAMATO")
      - HTTP_TIMEOUT (default: 10 seconds)
      - WATERMARK_FILE (default: "time.txt")
      - WATERMARK_LOOKBACK_HOURS (default: 200)
      - USE_REDIS (default: "false"), REDIS_HOST, REDIS_PORT, REDIS_DB, WATERMARK_KEY
      - LOG_LEVEL (default: "INFO"), LOG_FILE (default: None)
      - SCHEDULER_INTERVAL (default: 300 seconds)
    """
    load_dotenv()

    gmail_token = os.getenv("GOOGLE_GMAIL_TOKEN", "").strip()
    webhook_url = os.getenv("SLACK_WEBHOOK_URL", "").strip()

    if not gmail_token:
        raise ValueError("GOOGLE_GMAIL_TOKEN environment variable is required")
    if not webhook_url:
        raise ValueError("SLACK_WEBHOOK_URL environment variable is required")
    if not webhook_url.startswith(("https://", "http://")):
        raise ValueError(f"SLACK_WEBHOOK_URL must be an http(s) URL, got {webhook_url!r}")

    auto_reauthorize = os.getenv("AUTO_REAUTHORIZE", "false").lower() in _TRUTHY
    # With auto re-authorization the token file is created on first use
    if not auto_reauthorize and not Path(gmail_token).exists():
        raise FileNotFoundError(f"GOOGLE_GMAIL_TOKEN file not found: {gmail_token}")

    gmail_scopes_str = os.getenv("GOOGLE_GMAIL_SCOPES", ",".join(GmailClient.SCOPES_READONLY))
    gmail_scopes = [s.strip() for s in gmail_scopes_str.split(",") if s.strip()]

    use_redis = os.getenv("USE_REDIS", "false").lower() in _TRUTHY
    redis_port = int(os.getenv("REDIS_PORT", "6379"))
    if not (1 <= redis_port <= 65535):
        raise ValueError(f"REDIS_PORT must be between 1 and 65535, got {redis_port}")

    lookback_hours = int(os.getenv("WATERMARK_LOOKBACK_HOURS", "200"))
    if lookback_hours < 1:
        raise ValueError(f"WATERMARK_LOOKBACK_HOURS must be at least 1, got {lookback_hours}")

    http_timeout = float(os.getenv("HTTP_TIMEOUT", "10"))
    if http_timeout <= 0:
        raise ValueError(f"HTTP_TIMEOUT must be positive, got {http_timeout}")

    scheduler_interval = int(os.getenv("SCHEDULER_INTERVAL", "300"))
    if scheduler_interval < 60:
        raise ValueError(
            f"SCHEDULER_INTERVAL must be at least 60 seconds, got {scheduler_interval}"
        )

    cfg: Config = {
        "GMAIL_TOKEN": gmail_token,
        "GMAIL_SCOPES": gmail_scopes,
        "AUTO_REAUTHORIZE": auto_reauthorize,
        "SLACK_WEBHOOK_URL": webhook_url,
        "NOTIFIER_USERNAME": os.getenv("NOTIFIER_USERNAME", DEFAULT_USERNAME).strip() or DEFAULT_USERNAME,
        "HTTP_TIMEOUT": http_timeout,
        "WATERMARK_FILE": os.getenv("WATERMARK_FILE", "time.txt").strip(),
        "WATERMARK_LOOKBACK_HOURS": lookback_hours,
        "WATERMARK_KEY": os.getenv("WATERMARK_KEY", "parcel_notifier:watermark"),
        "USE_REDIS": use_redis,
        "REDIS_HOST": os.getenv("REDIS_HOST", "localhost").strip(),
        "REDIS_PORT": redis_port,
        "REDIS_DB": int(os.getenv("REDIS_DB", "0")),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        "LOG_FILE": os.getenv("LOG_FILE", "").strip() or None,
        "SCHEDULER_INTERVAL": scheduler_interval,
    }

    logger.debug(f"Configuration loaded: USE_REDIS={use_redis}, WATERMARK_FILE={cfg['WATERMARK_FILE']}")
    return cfg


def _init_clients(cfg: Config) -> tuple[GmailClient, WatermarkStore, SlackWebhookNotifier]:
    """
    Bootstrap the Gmail client, watermark store and Slack notifier.

    Raises:
        FileNotFoundError: If the token file doesn't exist
        TokenExpiredError: If the token cannot be refreshed
    """
    try:
        gmail_creds = ensure_valid_credentials(
            token_path=cfg["GMAIL_TOKEN"],
            scopes=cfg["GMAIL_SCOPES"],
            auto_reauthorize=cfg["AUTO_REAUTHORIZE"],
        )
    except TokenExpiredError as e:
        logger.error(
            f"\n{'='*80}\n"
            f"TOKEN EXPIRED - RE-AUTHORIZATION REQUIRED\n"
            f"{'='*80}\n"
            f"Error: {e}\n\n"
            f"To fix this, run:\n"
            f"  python scripts/bootstrap_oauth.py\n\n"
            f"Or set AUTO_REAUTHORIZE=true in .env to enable automatic re-authorization.\n"
            f"{'='*80}\n"
        )
        raise

    try:
        gmail_service = build("gmail", "v1", credentials=gmail_creds, cache_discovery=False)
        gmail = GmailClient(gmail_service)
        store = _init_storage(cfg)
        notifier = SlackWebhookNotifier(cfg["SLACK_WEBHOOK_URL"], timeout=cfg["HTTP_TIMEOUT"])
    except Exception as e:
        logger.error(f"Failed to initialize clients: {e}")
        raise

    logger.info("Clients initialized successfully")
    return gmail, store, notifier


def _init_storage(cfg: Config) -> WatermarkStore:
    """
    Select the watermark backend.

    Redis failures are fatal here: falling back to a fresh store would
    reset the watermark and re-send old notifications.
    """
    lookback = timedelta(hours=cfg["WATERMARK_LOOKBACK_HOURS"])
    if cfg["USE_REDIS"]:
        from parcel_notifier.storage.redis_kv import RedisWatermarkStore
        store = RedisWatermarkStore(
            key=cfg["WATERMARK_KEY"],
            host=cfg["REDIS_HOST"],
            port=cfg["REDIS_PORT"],
            db=cfg["REDIS_DB"],
            lookback=lookback,
        )
        logger.info(f"Using Redis watermark at {cfg['REDIS_HOST']}:{cfg['REDIS_PORT']}")
        return store

    logger.info(f"Using file watermark at {cfg['WATERMARK_FILE']}")
    return FileWatermarkStore(cfg["WATERMARK_FILE"], lookback=lookback)
