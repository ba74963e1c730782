"""Tests for page-following in get_all and search."""

import pytest

from helpscout_api_client import HelpScoutClient, MemoryTokenStorage, NotFoundError, PaginationError

from .conftest import API_URL, build_response


def hal_page(number, total_pages, conversations):
    body = {"page": {"size": 50, "totalElements": len(conversations), "totalPages": total_pages, "number": number}}
    if conversations:
        body["_embedded"] = {"conversations": conversations}
    return build_response(200, body, headers={"Content-Type": "application/json; charset=utf-8"})


def test_collects_pages_in_order(authed_client, http):
    http.side_effect = [
        hal_page(1, 2, [{"id": 1, "subject": "first"}]),
        hal_page(2, 2, [{"id": 2, "subject": "second"}]),
    ]

    result = authed_client.search_conversations("tag:conversion")

    assert [c["id"] for c in result] == [1, 2]
    first, second = http.call_args_list
    assert first.kwargs["url"] == f"{API_URL}/conversations"
    assert first.kwargs["params"] == {"page": 1, "query": "(tag:conversion)"}
    assert second.kwargs["params"] == {"page": 2, "query": "(tag:conversion)"}


def test_single_page_issues_one_request(authed_client, http):
    conversations = [{"id": 2391938111, "number": "349", "subject": "I need help!"}]
    http.return_value = hal_page(1, 1, conversations)

    assert authed_client.search_conversations("tag:conversion") == conversations
    assert http.call_count == 1


def test_empty_result(authed_client, http):
    http.return_value = build_response(200, {"page": {"size": 50, "totalElements": 0, "totalPages": 0, "number": 1}})

    assert authed_client.search_conversations("tag:none") == []
    assert http.call_count == 1


def test_missing_page_metadata_stops(authed_client, http):
    http.return_value = build_response(200, {"_embedded": {"conversations": [{"id": 1}]}})

    assert authed_client.search_conversations("tag:x") == [{"id": 1}]
    assert http.call_count == 1


def test_empty_body_stops(authed_client, http):
    http.return_value = build_response(204)

    assert authed_client.get_all("mailboxes", embedded_key="mailboxes") == []


def test_failure_discards_partial_results(authed_client, http):
    http.side_effect = [hal_page(1, 3, [{"id": 1}]), build_response(404)]

    with pytest.raises(NotFoundError):
        authed_client.search_conversations("tag:x")

    assert http.call_count == 2


def test_extra_params_kept_on_every_page(authed_client, http):
    http.side_effect = [
        build_response(200, {"_embedded": {"mailboxes": [{"id": 1}]}, "page": {"totalPages": 2}}),
        build_response(200, {"_embedded": {"mailboxes": [{"id": 2}]}, "page": {"totalPages": 2}}),
    ]

    result = authed_client.get_all("mailboxes", embedded_key="mailboxes", params={"sortField": "name"})

    assert result == [{"id": 1}, {"id": 2}]
    assert http.call_args_list[1].kwargs["params"] == {"sortField": "name", "page": 2}


def test_page_limit(http):
    client = HelpScoutClient(
        api_key="id",
        api_secret="secret",
        token_storage=MemoryTokenStorage("ACCESS_TOKEN"),
        max_pages=3,
    )
    http.return_value = hal_page(1, 50, [{"id": 1}])

    with pytest.raises(PaginationError):
        client.search_conversations("tag:x")

    assert http.call_count == 1


def test_unauthorized_mid_listing_refreshes(client, http, token_endpoint):
    http.side_effect = [
        hal_page(1, 2, [{"id": 1}]),
        build_response(401),
        hal_page(2, 2, [{"id": 2}]),
    ]

    assert [c["id"] for c in client.search_conversations("tag:x")] == [1, 2]
    assert token_endpoint.call_count == 1


def test_legacy_search(legacy_client, http):
    http.side_effect = [
        build_response(200, {"page": 1, "pages": 2, "count": 2, "items": [{"id": 1}]}),
        build_response(200, {"page": 2, "pages": 2, "count": 2, "items": [{"id": 2}]}),
    ]

    assert legacy_client.search_conversations("status:active") == [{"id": 1}, {"id": 2}]
    assert http.call_args_list[0].kwargs["url"] == "https://api.helpscout.net/v1/search/conversations.json"
