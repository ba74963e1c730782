"""
Custom exception types for the Help Scout API client.

Every failure the client can report is one of the classes below, so
callers branch on the exception type rather than on message text.
Status-code derived failures share :class:`HelpScoutAPIError` as their
base and keep the originating response for inspection.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Type

import requests

RATE_LIMIT_MESSAGE = (
    "Rate limit of 200 RPM or 12 POST/PUT/DELETE requests per 5 seconds "
    "reached. Next request possible in {retry_after} seconds."
)


class HelpScoutError(Exception):
    """Base exception for all Help Scout client errors."""


class HelpScoutAuthError(HelpScoutError):
    """Raised when the token endpoint answers without an access token."""


class TransportError(HelpScoutError):
    """Raised when no HTTP status was received (connection error, timeout)."""


class InvalidDataError(HelpScoutError):
    """Raised when arguments are rejected before any request is sent."""


class PaginationError(HelpScoutError):
    """Raised when a listing reports more pages than the client will follow."""


class HelpScoutAPIError(HelpScoutError):
    """Raised when the Help Scout API returns an error status.

    Attributes
    ----------
    status_code : int
        The HTTP status of the failed response.
    detail : object
        Server supplied error detail, passed through without reshaping.
    response : requests.Response
        The raw response, when available.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        detail: Any = None,
        response: Optional[requests.Response] = None,
    ) -> None:
        super().__init__(*([message] if message is not None else []))
        self.status_code = status_code
        self.detail = detail
        self.response = response


class ValidationError(HelpScoutAPIError):
    """400: the request body or parameters failed validation."""


class ForbiddenError(HelpScoutAPIError):
    """403: the credential is not allowed to access the resource."""


class NotFoundError(HelpScoutAPIError):
    """404: the resource does not exist."""


class TooManyRequestsError(HelpScoutAPIError):
    """429: the rate limit was reached.

    ``retry_after`` holds the number of seconds from the
    ``X-RateLimit-Retry-After`` header (``None`` when it is missing).
    """

    def __init__(self, message: Optional[str] = None, *, retry_after: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class InternalServerError(HelpScoutAPIError):
    """500: Help Scout failed to process the request."""


class ServiceUnavailableError(HelpScoutAPIError):
    """503: Help Scout is temporarily unavailable."""


class UnimplementedError(HelpScoutAPIError):
    """Any status this client has no dedicated handling for."""


_SIMPLE_ERRORS: Dict[int, Type[HelpScoutAPIError]] = {
    403: ForbiddenError,
    404: NotFoundError,
    503: ServiceUnavailableError,
}


def _decode_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _validation_detail(response: requests.Response) -> Any:
    body = _decode_json(response)
    if not isinstance(body, dict):
        return response.text or None
    embedded = body.get("_embedded")
    if isinstance(embedded, dict) and "errors" in embedded:
        return embedded["errors"]
    return body.get("message")


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def error_from_response(response: requests.Response) -> HelpScoutAPIError:
    """Build the exception matching the status code of ``response``.

    The caller decides whether the status is an error; this function
    only maps it to a kind.  A 401 that reaches this point (after the
    one permitted re-authentication, or in a mode that cannot refresh)
    has no dedicated kind and is reported as :class:`UnimplementedError`.
    """
    status = response.status_code
    common = {"status_code": status, "response": response}

    if status == 400:
        detail = _validation_detail(response)
        message = detail if isinstance(detail, str) or detail is None else json.dumps(detail)
        return ValidationError(message, detail=detail, **common)

    if status == 429:
        raw = response.headers.get("X-RateLimit-Retry-After")
        return TooManyRequestsError(
            RATE_LIMIT_MESSAGE.format(retry_after=raw),
            retry_after=_parse_retry_after(raw),
            detail=raw,
            **common,
        )

    if status == 500:
        body = _decode_json(response)
        error = body.get("error") if isinstance(body, dict) else None
        return InternalServerError(error, detail=error, **common)

    if status in _SIMPLE_ERRORS:
        return _SIMPLE_ERRORS[status](**common)

    body = _decode_json(response)
    server_message = body.get("message") if isinstance(body, dict) else None
    message = f"Help Scout returned a status this client does not handle: {status}"
    if server_message:
        message = f"{message}: {server_message}"
    return UnimplementedError(message, detail=server_message, **common)
