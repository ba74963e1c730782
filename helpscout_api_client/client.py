"""
Client implementation for the Help Scout REST API.

This module defines the :class:`HelpScoutClient` class which sends
authenticated requests to the Help Scout Mailbox API (v2, OAuth2) or
the legacy Help Desk API (v1, HTTP Basic auth).  Bearer tokens expire
without notice, so the client does not track an expiry: when a request
comes back 401 it mints a new token, stores it and repeats the request
exactly once.

Usage
-----

.. code-block:: python

    from helpscout_api_client import HelpScoutClient

    client = HelpScoutClient(api_key="app-id", api_secret="app-secret")

    conversation_id = client.create_conversation({
        "subject": "Help me!",
        "type": "email",
        "mailboxId": 123,
        "status": "active",
        "customer": {"email": "customer@example.com"},
        "threads": [{"type": "customer", "text": "Hello", "customer": {"email": "customer@example.com"}}],
    })
    for conversation in client.search_conversations("tag:refund"):
        print(conversation["subject"])

Every failure is raised as a subclass of
:class:`~helpscout_api_client.exceptions.HelpScoutError`.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import requests

from .auth import DEFAULT_TOKEN_URL, BasicAuth, OAuth2Auth
from .exceptions import (
    HelpScoutAPIError,
    InvalidDataError,
    PaginationError,
    TransportError,
    error_from_response,
)
from .token_storage import TokenStorage

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({200, 201, 204})

# https://developer.helpscout.com/mailbox-api/endpoints/conversations/list/
CONVERSATION_STATUSES = ("active", "closed", "open", "pending", "spam")

DEFAULT_MAX_PAGES = 1000


class HelpScoutClient:
    """A client for the Help Scout REST API.

    Parameters
    ----------
    api_key : str
        The OAuth app id in ``"oauth"`` mode, or the v1 API key in
        ``"basic"`` mode.
    api_secret : str, optional
        The OAuth app secret.  Required in ``"oauth"`` mode.
    auth_mode : str, optional
        ``"oauth"`` (default) for the v2 Mailbox API, ``"basic"`` for the
        legacy v1 API.
    token_storage : TokenStorage, optional
        Where the bearer token is kept in ``"oauth"`` mode.  Share one
        store between clients to share the token.
    auth : object, optional
        A ready-made auth strategy.  Overrides ``auth_mode``.
    base_url : str, optional
        Override the API base URL.  Defaults to
        ``https://api.helpscout.net/<api version>/``.
    token_url : str, optional
        Override the OAuth token endpoint.
    timeout : float, optional
        Default timeout in seconds for every HTTP request.
    max_pages : int, optional
        Largest page count :meth:`get_all` will follow.
    """

    _BASE_URL_TEMPLATE = "https://api.helpscout.net/{version}/"
    _AUTH_MODES = {"oauth", "basic"}

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        auth_mode: str = "oauth",
        token_storage: Optional[TokenStorage] = None,
        auth: Optional[Any] = None,
        base_url: Optional[str] = None,
        token_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        if auth is None:
            auth_mode = auth_mode.lower()
            if auth_mode not in self._AUTH_MODES:
                raise ValueError(
                    "auth_mode must be either 'oauth' or 'basic', got %r" % auth_mode
                )
            if not api_key:
                raise ValueError("api_key must be provided")
            if auth_mode == "oauth":
                if not api_secret:
                    raise ValueError("api_secret must be provided in oauth mode")
                auth = OAuth2Auth(
                    api_key,
                    api_secret,
                    token_storage=token_storage,
                    token_url=token_url or DEFAULT_TOKEN_URL,
                    timeout=timeout,
                )
            else:
                auth = BasicAuth(api_key)

        self.auth = auth
        self.base_url = base_url or self._BASE_URL_TEMPLATE.format(version=auth.api_version)
        self.timeout = timeout
        self.max_pages = max_pages

    @classmethod
    def from_env(cls, **overrides: Any) -> "HelpScoutClient":
        """Build a client from ``HELPSCOUT_*`` environment variables.

        Reads ``HELPSCOUT_API_KEY``, ``HELPSCOUT_API_SECRET`` (oauth mode
        only), ``HELPSCOUT_AUTH_MODE`` and ``HELPSCOUT_TIMEOUT``.  Keyword
        arguments take precedence over the environment.
        """
        auth_mode = overrides.pop("auth_mode", None) or os.getenv("HELPSCOUT_AUTH_MODE", "oauth")
        api_key = overrides.pop("api_key", None) or os.getenv("HELPSCOUT_API_KEY")
        api_secret = overrides.pop("api_secret", None) or os.getenv("HELPSCOUT_API_SECRET")

        missing = []
        if not api_key:
            missing.append("HELPSCOUT_API_KEY")
        if auth_mode.lower() == "oauth" and not api_secret:
            missing.append("HELPSCOUT_API_SECRET")
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        if "timeout" not in overrides and os.getenv("HELPSCOUT_TIMEOUT"):
            overrides["timeout"] = float(os.environ["HELPSCOUT_TIMEOUT"])

        return cls(api_key=api_key, api_secret=api_secret, auth_mode=auth_mode, **overrides)

    @property
    def api_version(self) -> str:
        return self.auth.api_version

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _prepare_url(self, path: str) -> str:
        """Build the full request URL from a relative or absolute path.

        Absolute URLs are returned as-is.  Relative paths are joined to
        ``base_url`` and get the strategy's suffix (``.json`` on v1).
        """
        if path.startswith("http://") or path.startswith("https://"):
            return path
        clean_path = path.strip("/")
        return f"{self.base_url.rstrip('/')}/{clean_path}{self.auth.path_suffix}"

    def _attempt(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]],
        json: Optional[Any],
        headers: Optional[Dict[str, str]],
        timeout: Optional[float],
    ) -> requests.Response:
        """Send one request with the current credential."""
        req_headers = {"Authorization": self.auth.authorization_header()}
        if json is not None:
            req_headers["Content-Type"] = "application/json"
        if headers:
            for key, value in headers.items():
                if key.lower() == "authorization":
                    continue
                req_headers[key] = value

        logger.debug("%s %s", method, url)
        try:
            return requests.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=req_headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Failed to connect to {url}: {exc}") from exc

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Perform a request and return the raw successful response.

        A 401 causes one token refresh and one repeat of the request when
        the auth strategy supports refreshing.  The repeated request is
        never retried again: a second 401 is raised like any other
        unhandled status.

        Raises
        ------
        HelpScoutAPIError
            A subclass matching the response status when it is not
            200, 201 or 204.
        TransportError
            If the request could not be sent or timed out.
        """
        method = method.upper()
        url = self._prepare_url(path)
        kwargs = dict(params=params, json=json, headers=headers, timeout=timeout)

        response = self._attempt(method, url, **kwargs)
        if response.status_code == 401 and self.auth.refreshable:
            logger.warning("%s %s returned 401, refreshing the access token", method, url)
            self.auth.refresh()
            response = self._attempt(method, url, **kwargs)

        if response.status_code in SUCCESS_STATUSES:
            return response

        error = error_from_response(response)
        logger.warning("%s %s failed with status %s", method, url, response.status_code)
        raise error

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """Return the parsed body, ``None`` for an empty one."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Perform a request and return the decoded payload.

        See :meth:`_send` for the parameters and raised exceptions.
        """
        return self._decode(self._send(method, path, **kwargs))

    # ------------------------------------------------------------------
    # Public convenience methods
    # ------------------------------------------------------------------
    def get(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a GET request."""
        return self._request("GET", path, params=params, headers=headers, timeout=timeout)

    def post(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a POST request."""
        return self._request("POST", path, params=params, json=json, headers=headers, timeout=timeout)

    def patch(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PATCH request."""
        return self._request("PATCH", path, params=params, json=json, headers=headers, timeout=timeout)

    def put(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PUT request."""
        return self._request("PUT", path, params=params, json=json, headers=headers, timeout=timeout)

    def delete(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a DELETE request."""
        return self._request("DELETE", path, params=params, headers=headers, timeout=timeout)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------
    @staticmethod
    def _read_page(result: Any, embedded_key: str) -> Tuple[List[Any], int]:
        """Return the items and total page count of one listing page.

        v2 pages are HAL documents (``_embedded.<key>`` and
        ``page.totalPages``); v1 pages carry ``items`` and ``pages``.
        """
        if not isinstance(result, dict):
            return [], 0
        if "_embedded" in result or isinstance(result.get("page"), dict):
            items = (result.get("_embedded") or {}).get(embedded_key) or []
            total_pages = (result.get("page") or {}).get("totalPages")
        else:
            items = result.get("items") or []
            total_pages = result.get("pages")
        return list(items), int(total_pages or 0)

    def get_all(
        self,
        path: str,
        *,
        embedded_key: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> List[Any]:
        """Performs GET requests until the last reported page.

        Items are returned in server order, first page first.  Any
        failure is raised immediately and the items collected so far are
        discarded.

        Raises
        ------
        PaginationError
            If the server reports more than ``max_pages`` pages.
        """
        output: List[Any] = []
        query = dict(params or {})
        page = 1
        while True:
            query["page"] = page
            result = self.get(path, params=dict(query), timeout=timeout)
            items, total_pages = self._read_page(result, embedded_key)
            if total_pages > self.max_pages:
                raise PaginationError(
                    f"{path} reports {total_pages} pages, more than the limit of {self.max_pages}"
                )
            output.extend(items)
            if page + 1 > total_pages:
                return output
            page += 1

    def search(self, path: str, query: str, *, embedded_key: str = "conversations") -> List[Any]:
        """Collect every result of a search query across all pages."""
        return self.get_all(path, embedded_key=embedded_key, params={"query": f"({query})"})

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------
    def create_conversation(self, data: Dict[str, Any]) -> Any:
        """Create a conversation and return its id.

        v2 reports the id in the ``Resource-ID`` header (returned as a
        string); v1 reports a ``Location`` URL ending in ``<id>.json``
        (returned as an int).
        """
        response = self._send("POST", "conversations", json=data)
        if self.api_version == "v1":
            location = response.headers.get("Location", "")
            match = re.search(r"(\d+)\.json$", location)
            if not match:
                raise HelpScoutAPIError(
                    f"Conversation created but Location header is unusable: {location!r}",
                    status_code=response.status_code,
                    response=response,
                )
            return int(match.group(1))
        return response.headers.get("Resource-ID")

    def get_conversation(self, conversation_id: Any, *, embed_threads: bool = False) -> Any:
        params = {"embed": "threads"} if embed_threads else None
        return self.get(f"conversations/{conversation_id}", params=params)

    def update_conversation(self, conversation_id: Any, data: Dict[str, Any]) -> None:
        """Update the subject, mailbox, status or assignee of a conversation.

        On v2 each change is sent as its own JSON Patch request because
        the API accepts a single operation per call.  On v1 ``data`` is
        sent as-is.

        Raises
        ------
        InvalidDataError
            If ``status`` is not one of :data:`CONVERSATION_STATUSES`.
        """
        if self.api_version == "v1":
            self.put(f"conversations/{conversation_id}", json=data)
            return

        instructions = []
        if data.get("subject"):
            instructions.append({"op": "replace", "path": "/subject", "value": data["subject"]})
        if data.get("mailboxId"):
            instructions.append({"op": "move", "path": "/mailboxId", "value": data["mailboxId"]})
        if data.get("status"):
            status = data["status"]
            if status not in CONVERSATION_STATUSES:
                raise InvalidDataError(
                    f"status {status!r} not supported, must be one of {list(CONVERSATION_STATUSES)}"
                )
            instructions.append({"op": "replace", "path": "/status", "value": status})
        if "assignTo" in data:
            if data["assignTo"]:
                instructions.append({"op": "replace", "path": "/assignTo", "value": data["assignTo"]})
            else:
                instructions.append({"op": "remove", "path": "/assignTo"})

        for instruction in instructions:
            self.patch(f"conversations/{conversation_id}", json=instruction)

    def update_conversation_tags(self, conversation_id: Any, tags: List[str]) -> Any:
        return self.put(f"conversations/{conversation_id}/tags", json={"tags": tags})

    def update_conversation_custom_fields(self, conversation_id: Any, fields: List[Dict[str, Any]]) -> Any:
        return self.put(f"conversations/{conversation_id}/fields", json={"fields": fields})

    def search_conversations(self, query: str) -> List[Any]:
        """Return every conversation matching ``query``, e.g. ``"tag:vip"``."""
        path = "search/conversations" if self.api_version == "v1" else "conversations"
        return self.search(path, query, embedded_key="conversations")

    def delete_conversation(self, conversation_id: Any) -> Any:
        return self.delete(f"conversations/{conversation_id}")

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------
    def create_note(
        self,
        *,
        conversation_id: Any,
        text: str,
        user: Optional[int] = None,
        imported: bool = False,
    ) -> bool:
        """Add a note to a conversation.

        ``imported`` threads generate no outgoing emails or notifications.
        """
        data = {"text": text, "user": user, "imported": imported}
        response = self._send("POST", f"conversations/{conversation_id}/notes", json=data)
        return response.status_code == 201

    def create_phone(
        self,
        *,
        conversation_id: Any,
        text: str,
        customer: int,
        imported: bool = False,
    ) -> bool:
        data = {"text": text, "customer": {"id": customer}, "imported": imported}
        response = self._send("POST", f"conversations/{conversation_id}/phones", json=data)
        return response.status_code == 201

    def create_reply(
        self,
        *,
        conversation_id: Any,
        text: str,
        customer: int,
        user: Optional[int] = None,
        imported: bool = False,
    ) -> bool:
        data = {"text": text, "user": user, "customer": {"id": customer}, "imported": imported}
        response = self._send("POST", f"conversations/{conversation_id}/reply", json=data)
        return response.status_code == 201

    # ------------------------------------------------------------------
    # Mailboxes
    # ------------------------------------------------------------------
    def get_mailboxes(self) -> Any:
        return self.get("mailboxes")

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------
    def get_customer(self, customer_id: Any) -> Any:
        return self.get(f"customers/{customer_id}")

    def update_customer(self, customer_id: Any, data: Dict[str, Any]) -> Any:
        """Replace a customer's profile fields.

        Addresses, chat handles, emails, phones, social profiles and
        websites have their own endpoints and are not changed here.
        """
        return self.put(f"customers/{customer_id}", json=data)

    def create_customer_phone(self, customer_id: Any, data: Dict[str, Any]) -> Any:
        return self.post(f"customers/{customer_id}/phones", json=data)

    def delete_customer_phone(self, customer_id: Any, phone_id: Any) -> Any:
        return self.delete(f"customers/{customer_id}/phones/{phone_id}")

    def create_customer_email(self, customer_id: Any, data: Dict[str, Any]) -> Any:
        return self.post(f"customers/{customer_id}/emails", json=data)

    def delete_customer_email(self, customer_id: Any, email_id: Any) -> Any:
        return self.delete(f"customers/{customer_id}/emails/{email_id}")
