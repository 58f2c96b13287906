from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional
import base64
import binascii

from googleapiclient.errors import HttpError

from parcel_notifier.logging import logger


class BodyDecodeError(Exception):
    """Raised when a message body is not valid URL-safe base64 / UTF-8."""
    pass


@dataclass(frozen=True)
class Message:
    """A fetched Gmail message reduced to what the poller needs."""
    id: str
    internal_date: int  # server delivery time, epoch milliseconds
    body_data: str  # URL-safe base64, as returned by the API

    @property
    def delivered_at(self) -> datetime:
        return datetime.fromtimestamp(self.internal_date / 1000, tz=timezone.utc)


def decode_body(data: str) -> str:
    """
    Decode Gmail's URL-safe base64 payload into UTF-8 text.

    Gmail omits base64 padding; it is restored before decoding.

    Raises:
        BodyDecodeError: If the data is not valid base64 or not UTF-8.
    """
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise BodyDecodeError(f"Cannot decode message body: {e}") from e


def _find_body_data(payload: dict) -> str:
    """
    Locate the encoded body in a Gmail payload tree.

    Single-part messages carry it at `payload.body.data`. For multipart
    messages the first `text/plain` part wins, then any part with data.
    """
    if not payload:
        return ""

    data = (payload.get("body") or {}).get("data")
    if data:
        return data

    parts = payload.get("parts") or []
    for p in parts:
        if p.get("mimeType") == "text/plain":
            found = _find_body_data(p)
            if found:
                return found
    for p in parts:
        found = _find_body_data(p)
        if found:
            return found
    return ""


class GmailClient:
    """
    Thin wrapper around an authorized googleapiclient Gmail service.

    Only the two calls the poller needs: list message ids for a search
    query (newest first) and fetch one message. No retries: a failed call
    propagates and aborts the cycle.
    """

    #: OAuth scope used for read-only access to Gmail.
    SCOPES_READONLY = ["https://www.googleapis.com/auth/gmail.readonly"]

    def __init__(self, gmail_service, user_id: str = "me") -> None:
        """
        Args:
            gmail_service: An instance of googleapiclient Gmail service, already
                authorized with read-only scope.
            user_id: Mailbox owner, "me" for the authorized user.
        """
        self.svc = gmail_service
        self.user_id = user_id

    def list_message_ids(self, query: str, max_results: int) -> List[str]:
        """
        Return ids of the newest `max_results` messages matching `query`.

        Gmail returns ids newest -> oldest; this order is preserved and the
        poller relies on it.

        Raises:
            HttpError: If the API call fails.
        """
        try:
            resp: Dict = self.svc.users().messages().list(
                userId=self.user_id,
                q=query,
                maxResults=max_results,
            ).execute()
        except HttpError as e:
            logger.error(f"Failed to list messages for query {query!r}: {e}")
            raise

        ids = [m["id"] for m in resp.get("messages", [])]
        logger.debug(f"Listed {len(ids)} message(s) for query {query!r}")
        return ids

    def get_message(self, message_id: str) -> Message:
        """
        Fetch one message with its delivery time and encoded body.

        Raises:
            HttpError: If the API call fails.
        """
        try:
            m: Dict = self.svc.users().messages().get(
                userId=self.user_id,
                id=message_id,
                format="full",
            ).execute()
        except HttpError as e:
            logger.error(f"Failed to fetch message {message_id}: {e}")
            raise

        internal_date: Optional[str] = m.get("internalDate")
        return Message(
            id=m.get("id", message_id),
            internal_date=int(internal_date or 0),
            body_data=_find_body_data(m.get("payload", {})),
        )
