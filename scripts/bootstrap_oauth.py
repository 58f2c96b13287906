"""
One-time interactive Gmail authorization.

Creates (or refreshes) the token file named by GOOGLE_GMAIL_TOKEN so the
poller can run unattended afterwards.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from googleapiclient.discovery import build

from parcel_notifier.auth import ensure_valid_credentials
from parcel_notifier.gmail.client import GmailClient

load_dotenv()

CLIENT_SECRETS = Path(os.getenv("GOOGLE_CLIENT_SECRETS", "./credentials/client_secret.json"))
GMAIL_TOKEN = Path(os.getenv("GOOGLE_GMAIL_TOKEN", "./credentials/token_gmail.json"))
GMAIL_SCOPES = [
    s.strip()
    for s in os.getenv("GOOGLE_GMAIL_SCOPES", ",".join(GmailClient.SCOPES_READONLY)).split(",")
    if s.strip()
]


def check_gmail(creds) -> None:
    svc = build("gmail", "v1", credentials=creds, cache_discovery=False)
    labels = svc.users().labels().list(userId="me").execute().get("labels", [])
    print(f"[OK] Gmail: {len(labels)} labels")


if __name__ == "__main__":
    if not CLIENT_SECRETS.exists():
        print(f"[ERROR] Missing client secrets file: {CLIENT_SECRETS}")
        print("        Set GOOGLE_CLIENT_SECRETS to the path of client_secret.json")
        sys.exit(1)

    print(f"Client secrets: {CLIENT_SECRETS}")
    print(f"Gmail token:    {GMAIL_TOKEN}")
    print(f"Scopes:         {', '.join(GMAIL_SCOPES)}\n")

    try:
        creds = ensure_valid_credentials(
            token_path=str(GMAIL_TOKEN),
            scopes=GMAIL_SCOPES,
            auto_reauthorize=True,
        )
        check_gmail(creds)
    except KeyboardInterrupt:
        print("\n[ERROR] Authorization cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n[ERROR] Authorization failed: {e}")
        sys.exit(1)

    print(f"\n[OK] Token saved: {GMAIL_TOKEN}")
