# src/parcel_notifier/pipeline/run.py
"""
One poll cycle:
- Load the watermark
- List the newest matching Gmail messages (fixed page, newest first)
- Fetch messages one at a time, stopping at the first one older than the watermark
- Advance the candidate watermark from delivery times
- Extract template lines and post each match to Slack
- Save the candidate watermark

Any fatal stage aborts the cycle before the save, so the next run starts
again from the old watermark. Boundary messages (delivered in the same
second as the watermark) are processed again: delivery is at-least-once.

Precondition: the mailbox lists results newest first. A message listed after
a stale one is never looked at, even if it is itself new.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional, Tuple

from parcel_notifier.extraction.templates import Extraction, extract
from parcel_notifier.gmail.client import BodyDecodeError, GmailClient, Message, decode_body
from parcel_notifier.logging import logger
from parcel_notifier.notify.slack import DEFAULT_USERNAME, NotificationError
from parcel_notifier.storage.watermark import WatermarkError, WatermarkStore


#: Messages listed per cycle.
PAGE_SIZE = 5


class PipelineError(Exception):
    """A fatal stage failure; the watermark was not saved."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} stage failed: {cause}")
        self.stage = stage
        self.cause = cause


def _seconds_millis(watermark: datetime) -> int:
    """Watermark truncated to whole seconds, in epoch milliseconds."""
    return int(watermark.timestamp()) * 1000


def is_stale(message: Message, watermark: datetime) -> bool:
    """True if the message was delivered strictly before the watermark second."""
    return _seconds_millis(watermark) - message.internal_date > 0


def take_new(messages: Iterable[Message], watermark: datetime) -> Iterator[Message]:
    """
    Yield messages from a newest-first sequence until the first stale one.

    The scan stops at that message; it and everything after it is never
    pulled from `messages`, so lazy fetching stops as well.
    """
    for message in messages:
        if is_stale(message, watermark):
            logger.info(
                f"[WATERMARK] Message {message.id} delivered {message.delivered_at.isoformat()} "
                f"is older than watermark, stopping scan"
            )
            return
        yield message


def advance(candidate: datetime, message: Message) -> datetime:
    """Move the candidate watermark up to the message's delivery second, never down."""
    if message.internal_date > _seconds_millis(candidate):
        return datetime.fromtimestamp(message.internal_date // 1000, tz=timezone.utc)
    return candidate


def extract_message(message: Message) -> Optional[Extraction]:
    """
    Decode one message body and run template extraction on it.

    Undecodable bodies are logged and treated as no match.
    """
    try:
        body = decode_body(message.body_data)
    except BodyDecodeError as e:
        logger.warning(f"Skipping message {message.id}: {e}")
        return None
    return extract(body)


def extract_matches(messages: Iterable[Message]) -> Iterator[Tuple[Message, Extraction]]:
    """Yield (message, extraction) for every message matching a template."""
    for message in messages:
        extraction = extract_message(message)
        if extraction is None:
            logger.debug(f"Message {message.id} matches no template")
            continue
        yield message, extraction


def _fetch_messages(gmail: GmailClient, ids: List[str]) -> Iterator[Message]:
    for mid in ids:
        try:
            yield gmail.get_message(mid)
        except Exception as e:
            raise PipelineError("fetch", e) from e


def run_once(
    gmail: GmailClient,
    store: WatermarkStore,
    notifier,
    query: str,
    *,
    page_size: int = PAGE_SIZE,
    username: str = DEFAULT_USERNAME,
) -> datetime:
    """
    Run a single poll cycle.

    Args:
        gmail: Mailbox client (`list_message_ids`, `get_message`).
        store: Watermark store.
        notifier: Object with `post(text, username)`.
        query: Gmail search query.
        page_size: Messages listed per cycle.
        username: Display name for notifications.

    Returns:
        The saved watermark.

    Raises:
        PipelineError: If loading, listing, fetching, notifying or saving fails.
            Nothing is saved in that case.
    """
    try:
        watermark = store.load()
    except WatermarkError as e:
        raise PipelineError("load", e) from e
    candidate = watermark

    try:
        ids = gmail.list_message_ids(query, max_results=page_size)
    except Exception as e:
        raise PipelineError("list", e) from e
    logger.info(f"Listed {len(ids)} message(s) for query {query!r}")

    processed = notified = 0

    def advancing(messages: Iterable[Message]) -> Iterator[Message]:
        # Every new message moves the candidate, matched or not
        nonlocal candidate, processed
        for message in messages:
            processed += 1
            candidate = advance(candidate, message)
            yield message

    new_messages = advancing(take_new(_fetch_messages(gmail, ids), watermark))
    for message, extraction in extract_matches(new_messages):
        logger.info(f"Message {message.id} matched '{extraction.title}':\n{extraction.text}")
        try:
            notifier.post(extraction.text, username)
        except NotificationError as e:
            raise PipelineError("notify", e) from e
        notified += 1

    try:
        store.save(candidate)
    except WatermarkError as e:
        raise PipelineError("save", e) from e

    logger.info(
        f"Cycle complete: processed={processed}, notified={notified}, "
        f"watermark {watermark.isoformat()} -> {candidate.isoformat()}"
    )
    return candidate


def main(query: str) -> None:
    """Load configuration, build clients and run one cycle."""
    from parcel_notifier.config import _load_env, _init_clients
    from parcel_notifier.logging import cycle_context, setup_logging

    cfg = _load_env()
    setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])

    logger.info("Starting parcel notifier cycle")
    gmail, store, notifier = _init_clients(cfg)
    with cycle_context("once"):
        run_once(gmail, store, notifier, query, username=cfg["NOTIFIER_USERNAME"])
