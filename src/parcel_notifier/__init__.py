"""Poll a Gmail mailbox for carrier notifications and forward them to Slack."""

__version__ = "0.1.0"
