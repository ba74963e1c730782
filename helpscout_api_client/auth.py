"""
Authentication strategies for the Help Scout API.

Two transports exist.  The Mailbox API v2 uses OAuth2 bearer tokens
obtained with the client credentials grant; the tokens expire without
notice, so :class:`OAuth2Auth` mints a new one only when the API answers
401.  The legacy Help Desk API v1 uses HTTP Basic auth with the API key
as the username and a placeholder password, which never needs
refreshing (:class:`BasicAuth`).

The client talks to a strategy through ``api_version``, ``path_suffix``,
``refreshable``, :meth:`authorization_header` and :meth:`refresh`.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import requests

from .exceptions import HelpScoutAuthError, TransportError, error_from_response
from .token_storage import MemoryTokenStorage, TokenStorage

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://api.helpscout.net/v2/oauth2/token"


def fetch_access_token(
    client_id: str,
    client_secret: str,
    *,
    token_url: str = DEFAULT_TOKEN_URL,
    timeout: Optional[float] = None,
) -> str:
    """Exchange the app id and secret for a new access token.

    Exactly one request is sent; failures are never retried.  Error
    statuses are raised as the same exception kinds the client uses for
    API calls, and connection failures as :class:`TransportError`.
    The response carries no reliable expiry, so only the token string is
    returned.
    """
    payload = {
        "grant_type": "client_credentials",
        "client_id": client_id,
        "client_secret": client_secret,
    }
    try:
        response = requests.post(
            token_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TransportError(f"Failed to connect to {token_url}: {exc}") from exc

    if response.status_code not in (200, 201):
        raise error_from_response(response)

    try:
        token_info: Dict[str, Any] = response.json()
    except ValueError:
        token_info = {}
    access_token = token_info.get("access_token") if isinstance(token_info, dict) else None
    if not access_token:
        raise HelpScoutAuthError("Authentication response did not contain an access_token")
    return access_token


class OAuth2Auth:
    """Bearer token auth for the v2 Mailbox API.

    Parameters
    ----------
    client_id : str
        The OAuth app id (the "API key" in Help Scout's settings).
    client_secret : str
        The OAuth app secret.
    token_storage : TokenStorage, optional
        Where the current token lives.  Defaults to a fresh
        :class:`MemoryTokenStorage`.
    token_url : str, optional
        Override the token endpoint.
    timeout : float, optional
        Timeout in seconds for token requests.
    """

    api_version = "v2"
    path_suffix = ""
    refreshable = True

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        token_storage: Optional[TokenStorage] = None,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: Optional[float] = None,
    ) -> None:
        if not client_id:
            raise ValueError("client_id must be provided")
        if not client_secret:
            raise ValueError("client_secret must be provided")
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_storage = token_storage if token_storage is not None else MemoryTokenStorage()
        self.token_url = token_url
        self.timeout = timeout

    def authorization_header(self) -> str:
        # A missing token is sent as-is; the API answers 401 and we refresh.
        return f"Bearer {self.token_storage.get() or ''}"

    def refresh(self) -> str:
        """Mint a new token and store it."""
        token = fetch_access_token(
            self.client_id,
            self.client_secret,
            token_url=self.token_url,
            timeout=self.timeout,
        )
        self.token_storage.set(token)
        logger.info("Obtained a new Help Scout access token")
        return token


class BasicAuth:
    """HTTP Basic auth for the legacy v1 Help Desk API."""

    api_version = "v1"
    path_suffix = ".json"
    refreshable = False

    # v1 ignores the password but requires one to be present.
    PLACEHOLDER_PASSWORD = "X"

    def __init__(self, api_key: str) -> None:
        if not api_key:
            raise ValueError("api_key must be provided")
        self.api_key = api_key

    def authorization_header(self) -> str:
        raw = f"{self.api_key}:{self.PLACEHOLDER_PASSWORD}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def refresh(self) -> str:
        raise NotImplementedError("Basic auth credentials cannot be refreshed")
