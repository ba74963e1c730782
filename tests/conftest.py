import json
from unittest.mock import patch

import pytest
import requests

from helpscout_api_client import HelpScoutClient, MemoryTokenStorage

API_URL = "https://api.helpscout.net/v2"
TOKEN_URL = "https://api.helpscout.net/v2/oauth2/token"


def build_response(status_code, body=None, *, headers=None, text=None):
    """Return a real requests.Response with the given status, body and headers."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/hal+json"
    elif text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = b""
    response.headers.update(headers or {})
    return response


@pytest.fixture
def http():
    """Patch the API transport; configure return_value or side_effect per test."""
    with patch("requests.request") as request:
        yield request


@pytest.fixture
def token_endpoint():
    """Patch the token endpoint; answers with ACCESS_TOKEN by default."""
    with patch("requests.post") as post:
        post.return_value = build_response(200, {"access_token": "ACCESS_TOKEN"})
        yield post


@pytest.fixture
def storage():
    return MemoryTokenStorage()


@pytest.fixture
def client(storage, token_endpoint):
    return HelpScoutClient(api_key="api_key", api_secret="api_secret", token_storage=storage)


@pytest.fixture
def authed_client(token_endpoint):
    return HelpScoutClient(
        api_key="api_key",
        api_secret="api_secret",
        token_storage=MemoryTokenStorage("ACCESS_TOKEN"),
    )


@pytest.fixture
def legacy_client():
    return HelpScoutClient(api_key="api_key", auth_mode="basic")
