"""
Long-running service: poll on a fixed interval until SIGINT/SIGTERM.
"""

from __future__ import annotations
from typing import Callable

from parcel_notifier.config import Config, _load_env, _init_clients
from parcel_notifier.logging import logger, setup_logging
from parcel_notifier.pipeline.run import run_once
from parcel_notifier.scheduler import PipelineScheduler


def create_pipeline_wrapper(cfg: Config, query: str) -> Callable[[], None]:
    """Build clients once and return a zero-argument cycle function."""
    gmail, store, notifier = _init_clients(cfg)

    def pipeline_func() -> None:
        run_once(gmail, store, notifier, query, username=cfg["NOTIFIER_USERNAME"])

    return pipeline_func


def main(query: str) -> None:
    """Main service entry point."""
    cfg = _load_env()
    setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])
    logger.info(f"Starting parcel notifier service for query {query!r}")

    scheduler = PipelineScheduler(
        pipeline_func=create_pipeline_wrapper(cfg, query),
        interval_seconds=cfg["SCHEDULER_INTERVAL"],
    )
    scheduler.start()
    try:
        scheduler.wait()
    finally:
        scheduler.stop()
        logger.info("Service stopped")
