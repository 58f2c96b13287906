"""Gmail API access."""

from parcel_notifier.gmail.client import BodyDecodeError, GmailClient, Message, decode_body

__all__ = ["BodyDecodeError", "GmailClient", "Message", "decode_body"]
