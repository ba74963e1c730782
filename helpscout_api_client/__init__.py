"""
Python client for interacting with the Help Scout REST API.

This package provides a `HelpScoutClient` class that authenticates
against Help Scout, sends requests to the conversation, thread,
mailbox and customer endpoints, follows paginated listings and turns
error responses into typed exceptions.

Examples
--------

```python
from helpscout_api_client import HelpScoutClient

# OAuth2 client credentials (Mailbox API v2)
client = HelpScoutClient(api_key="APP_ID", api_secret="APP_SECRET")
conversation = client.get_conversation(1337, embed_threads=True)

# Legacy API key (Help Desk API v1)
legacy = HelpScoutClient(api_key="API_KEY", auth_mode="basic")
```

Access tokens are kept in a `TokenStorage`.  The default keeps them in
memory; pass a `RedisTokenStorage` to reuse a token across processes.
"""

from .auth import BasicAuth, OAuth2Auth, fetch_access_token
from .client import CONVERSATION_STATUSES, HelpScoutClient
from .exceptions import (
    ForbiddenError,
    HelpScoutAPIError,
    HelpScoutAuthError,
    HelpScoutError,
    InternalServerError,
    InvalidDataError,
    NotFoundError,
    PaginationError,
    ServiceUnavailableError,
    TooManyRequestsError,
    TransportError,
    UnimplementedError,
    ValidationError,
)
from .token_storage import MemoryTokenStorage, RedisTokenStorage, TokenStorage

__all__ = [
    "HelpScoutClient",
    "CONVERSATION_STATUSES",
    "BasicAuth",
    "OAuth2Auth",
    "fetch_access_token",
    "TokenStorage",
    "MemoryTokenStorage",
    "RedisTokenStorage",
    "HelpScoutError",
    "HelpScoutAPIError",
    "HelpScoutAuthError",
    "TransportError",
    "InvalidDataError",
    "PaginationError",
    "ValidationError",
    "ForbiddenError",
    "NotFoundError",
    "TooManyRequestsError",
    "InternalServerError",
    "ServiceUnavailableError",
    "UnimplementedError",
]
