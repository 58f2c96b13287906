"""
Gmail OAuth credentials: load the cached token, refresh it, and fall back
to the interactive installed-app flow when allowed.
"""

from __future__ import annotations
import errno
import os
from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from parcel_notifier.logging import logger


DEFAULT_CLIENT_SECRETS = "./credentials/client_secret.json"


class TokenExpiredError(Exception):
    """Raised when the Gmail token cannot be refreshed and needs re-authorization."""
    pass


def _save_token(token_file: Path, creds: Credentials) -> None:
    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(creds.to_json(), encoding="utf-8")


def reauthorize_token(
    token_path: str,
    scopes: list[str],
    client_secrets_path: Optional[str] = None,
) -> Credentials:
    """
    Run the installed-app OAuth flow and cache the resulting token.

    Args:
        token_path: Where to write the new token file
        scopes: OAuth scopes to request
        client_secrets_path: Path to client_secret.json. Defaults to
            GOOGLE_CLIENT_SECRETS or ./credentials/client_secret.json.

    Raises:
        FileNotFoundError: If the client secrets file doesn't exist
    """
    if client_secrets_path is None:
        client_secrets_path = os.getenv("GOOGLE_CLIENT_SECRETS", DEFAULT_CLIENT_SECRETS)

    client_secrets = Path(client_secrets_path)
    if not client_secrets.exists():
        raise FileNotFoundError(
            f"Client secrets file not found: {client_secrets}. "
            f"Set GOOGLE_CLIENT_SECRETS or place client_secret.json in credentials/"
        )

    logger.info(f"Starting OAuth authorization flow for {token_path}")
    logger.info("A browser window will open. Please complete the authorization.")

    flow = InstalledAppFlow.from_client_secrets_file(str(client_secrets), scopes)
    creds = flow.run_local_server(port=0)

    if not creds.refresh_token:
        logger.warning(
            "No refresh token received. Revoke access at "
            "https://myaccount.google.com/permissions and authorize again "
            "if this poller has to run unattended."
        )

    _save_token(Path(token_path), creds)
    logger.info(f"Token saved to {token_path}")
    return creds


def ensure_valid_credentials(
    token_path: str,
    scopes: list[str],
    auto_reauthorize: bool = False,
) -> Credentials:
    """
    Load the cached Gmail token and refresh it if it has expired.

    Args:
        token_path: Path to the authorized-user token JSON
        scopes: OAuth scopes required
        auto_reauthorize: Start the interactive flow instead of failing when
            the token is missing or cannot be refreshed.

    Raises:
        FileNotFoundError: If the token file doesn't exist
        TokenExpiredError: If refresh fails and auto_reauthorize is False
    """
    token_file = Path(token_path)
    if not token_file.exists():
        if auto_reauthorize:
            logger.warning(f"Token file not found: {token_path}. Starting authorization...")
            return reauthorize_token(token_path, scopes)
        raise FileNotFoundError(f"Token file not found: {token_path}")

    creds = Credentials.from_authorized_user_file(str(token_file), scopes)
    if creds.valid:
        return creds

    if not creds.refresh_token:
        logger.warning(f"No refresh token found for {token_path}. Re-authorization required.")
        if auto_reauthorize:
            return reauthorize_token(token_path, scopes)
        raise TokenExpiredError(
            f"No refresh token for {token_path}. "
            f"Run 'python scripts/bootstrap_oauth.py' to re-authorize."
        )

    try:
        from google.auth.transport.requests import Request
        creds.refresh(Request())
    except RefreshError as e:
        logger.error(f"Token refresh failed for {token_path}: {e}")
        if auto_reauthorize:
            logger.info("Attempting automatic re-authorization...")
            return reauthorize_token(token_path, scopes)
        raise TokenExpiredError(
            f"Token refresh failed for {token_path}. "
            f"Run 'python scripts/bootstrap_oauth.py' to re-authorize."
        ) from e

    try:
        _save_token(token_file, creds)
        logger.debug(f"Credentials refreshed for {token_path}")
    except OSError as e:
        if e.errno != errno.EROFS:
            raise
        logger.warning(
            f"Credentials refreshed but cannot save to {token_path} (read-only file system). "
            f"Token will work until expiration."
        )
    return creds
