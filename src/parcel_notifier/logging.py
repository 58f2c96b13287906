"""
Logging configuration using loguru.

Every record carries a `cycle` label so the lines of one poll cycle can be
grepped out of a long-running service log. Outside a cycle the label is "-".
"""

from __future__ import annotations
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger


NO_CYCLE = "-"

_PREFIX = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[cycle]: <6} | "
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[cycle]: <6}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = _PREFIX + "{name}:{function}:{line} - {message}"

logger.configure(extra={"cycle": NO_CYCLE})


@contextmanager
def cycle_context(label: str | int) -> Iterator[None]:
    """Tag every record logged inside the block with the given cycle label."""
    with logger.contextualize(cycle=str(label)):
        yield


def setup_logging(
    log_level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    console_level: str | None = None,
) -> None:
    """
    Replace loguru's default handler with the poller's sinks.

    Args:
        log_level: Level for the file sink, and for the console when no file is set.
        log_file: Rotating log file for unattended runs. None logs to stderr only.
        rotation: When to rotate the file (e.g. "10 MB", "1 day").
        retention: How long rotated files are kept (e.g. "7 days").
        console_level: Console level override. Defaults to WARNING when a
            log file is set, so cron mail only carries problems.
    """
    logger.remove()
    logger.configure(extra={"cycle": NO_CYCLE})

    if console_level is None:
        console_level = "WARNING" if log_file else log_level
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    if not log_file:
        return

    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            catch=True,
        )
    except OSError as e:
        # Polling goes on with console output only
        print(f"WARNING: cannot log to {log_path}: {e}", file=sys.stderr)
        return
    print(f"Logging to file: {log_path}", file=sys.stderr)


__all__ = ["logger", "setup_logging", "cycle_context", "NO_CYCLE"]
