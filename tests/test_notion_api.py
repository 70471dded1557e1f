"""
Tests for the Notion API wrapper.

Uses a mocked requests.Session so no network access happens.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from gcontact_notion_sync.api.notion_api import (
    DEFAULT_NOTION_VERSION,
    LINKED_CONTACTS_FILTER,
    NOTION_API_URL,
    NotionAPI,
    NotionAPIError,
    NotionRateLimitError,
)


def make_response(status_code=200, json_data=None, headers=None):
    """Create a mock response that behaves like requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = json_data if json_data is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def session():
    mock_session = MagicMock(spec=requests.Session)
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def api(session):
    return NotionAPI("secret_token", session=session, initial_retry_delay=0.01)


class TestNotionAPIInitialization:
    """Tests for NotionAPI initialization."""

    def test_requires_token(self, session):
        with pytest.raises(ValueError):
            NotionAPI("", session=session)

    def test_sets_headers(self, api, session):
        assert session.headers["Authorization"] == "Bearer secret_token"
        assert session.headers["Notion-Version"] == DEFAULT_NOTION_VERSION
        assert session.headers["Content-Type"] == "application/json"

    def test_custom_notion_version(self, session):
        NotionAPI("token", notion_version="2025-09-03", session=session)
        assert session.headers["Notion-Version"] == "2025-09-03"

    def test_page_size_capped_at_100(self, session):
        api = NotionAPI("token", page_size=500, session=session)
        assert api.page_size == 100

    def test_creates_session_when_not_given(self):
        api = NotionAPI("token")
        assert isinstance(api.session, requests.Session)


class TestQueryDatabase:
    """Tests for query_database."""

    def test_single_page(self, api, session):
        session.request.return_value = make_response(
            json_data={"results": [{"id": "p1"}], "has_more": False}
        )

        pages = api.query_database("db1")

        assert pages == [{"id": "p1"}]
        session.request.assert_called_once_with(
            "POST",
            f"{NOTION_API_URL}/databases/db1/query",
            json={"page_size": 100, "filter": LINKED_CONTACTS_FILTER},
            timeout=30,
        )

    def test_follows_pagination(self, api, session):
        session.request.side_effect = [
            make_response(
                json_data={
                    "results": [{"id": "p1"}],
                    "has_more": True,
                    "next_cursor": "cursor-2",
                }
            ),
            make_response(
                json_data={"results": [{"id": "p2"}], "has_more": False}
            ),
        ]

        pages = api.query_database("db1")

        assert [p["id"] for p in pages] == ["p1", "p2"]
        second_body = session.request.call_args_list[1].kwargs["json"]
        assert second_body["start_cursor"] == "cursor-2"

    def test_no_filter(self, api, session):
        session.request.return_value = make_response(json_data={"results": []})

        api.query_database("db1", query_filter=None)

        body = session.request.call_args.kwargs["json"]
        assert "filter" not in body

    def test_empty_database(self, api, session):
        session.request.return_value = make_response(
            json_data={"results": [], "has_more": False}
        )
        assert api.query_database("db1") == []


class TestWritePages:
    """Tests for create_page and update_page."""

    def test_create_page_posts_parent_and_properties(self, api, session):
        session.request.return_value = make_response(json_data={"id": "new"})
        payload = {
            "parent": {"type": "database_id", "database_id": "db1"},
            "properties": {"Name": {"title": [{"text": {"content": "Jane"}}]}},
        }

        page = api.create_page(payload)

        assert page == {"id": "new"}
        session.request.assert_called_once_with(
            "POST", f"{NOTION_API_URL}/pages", json=payload, timeout=30
        )

    def test_create_page_drops_page_id(self, api, session):
        session.request.return_value = make_response(json_data={"id": "new"})

        api.create_page({"parent": {}, "properties": {}, "page_id": "x"})

        assert "page_id" not in session.request.call_args.kwargs["json"]

    def test_update_page_patches_properties(self, api, session):
        session.request.return_value = make_response(json_data={"id": "p1"})
        properties = {"Title": {"rich_text": [{"text": {"content": "CTO"}}]}}

        api.update_page(
            {"parent": {"database_id": "db1"}, "properties": properties, "page_id": "p1"}
        )

        session.request.assert_called_once_with(
            "PATCH",
            f"{NOTION_API_URL}/pages/p1",
            json={"properties": properties},
            timeout=30,
        )

    def test_update_page_requires_page_id(self, api):
        with pytest.raises(ValueError, match="page_id"):
            api.update_page({"properties": {}})


class TestRetryLogic:
    """Tests for retry and error handling."""

    @patch("gcontact_notion_sync.api.notion_api.time.sleep")
    def test_retries_on_rate_limit(self, mock_sleep, api, session):
        session.request.side_effect = [
            make_response(429, headers={"Retry-After": "2"}),
            make_response(json_data={"id": "p1"}),
        ]

        page = api.create_page({"properties": {}})

        assert page == {"id": "p1"}
        mock_sleep.assert_called_once_with(2.0)

    @patch("gcontact_notion_sync.api.notion_api.time.sleep")
    def test_rate_limit_exhausted(self, mock_sleep, session):
        api = NotionAPI("token", session=session, max_retries=2)
        session.request.return_value = make_response(429)

        with pytest.raises(NotionRateLimitError):
            api.create_page({"properties": {}})

        assert session.request.call_count == 2

    @patch("gcontact_notion_sync.api.notion_api.time.sleep")
    def test_retries_on_server_error(self, mock_sleep, api, session):
        session.request.side_effect = [
            make_response(502),
            make_response(json_data={"id": "p1"}),
        ]

        assert api.create_page({"properties": {}}) == {"id": "p1"}
        assert mock_sleep.call_count == 1

    @patch("gcontact_notion_sync.api.notion_api.time.sleep")
    def test_backoff_is_capped(self, mock_sleep, session):
        api = NotionAPI(
            "token",
            session=session,
            max_retries=4,
            initial_retry_delay=1.0,
            max_retry_delay=1.5,
        )
        session.request.return_value = make_response(500)

        with pytest.raises(NotionAPIError):
            api.create_page({"properties": {}})

        delays = [c.args[0] for c in mock_sleep.call_args_list]
        assert delays == [1.0, 1.5, 1.5]

    def test_client_error_not_retried(self, api, session):
        session.request.return_value = make_response(
            400, json_data={"message": "Title is not a property that exists."}
        )

        with pytest.raises(NotionAPIError, match="Title is not a property"):
            api.create_page({"properties": {}})

        assert session.request.call_count == 1

    @patch("gcontact_notion_sync.api.notion_api.time.sleep")
    def test_connection_error_retried_then_raised(self, mock_sleep, session):
        api = NotionAPI("token", session=session, max_retries=3)
        session.request.side_effect = requests.ConnectionError("down")

        with pytest.raises(NotionAPIError, match="down"):
            api.query_database("db1")

        assert session.request.call_count == 3
