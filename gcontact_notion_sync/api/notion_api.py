"""
Notion API wrapper for the destination contacts database.

Provides a high-level interface to the Notion REST API for:
- Querying all pages of a database linked to a Google contact
- Creating and updating database pages
- Exponential backoff retry logic for rate limits and server errors
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import requests
from requests.exceptions import RequestException

NOTION_API_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"

# Maximum number of pages per database query (API max is 100)
DEFAULT_PAGE_SIZE = 100

# Retry configuration defaults
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_RETRY_DELAY = 1.0  # seconds
DEFAULT_MAX_RETRY_DELAY = 60.0  # seconds

# Timeout for a single HTTP request (in seconds)
DEFAULT_TIMEOUT = 30

# Pages without a contactId were added by hand in Notion and are never synced
LINKED_CONTACTS_FILTER = {
    "property": "contactId",
    "rich_text": {"is_not_empty": True},
}

logger = logging.getLogger(__name__)


class NotionAPIError(Exception):
    """Raised when a Notion API operation fails."""

    pass


class NotionRateLimitError(NotionAPIError):
    """Raised when rate limit is exceeded and retries are exhausted."""

    pass


class NotionAPI:
    """
    Notion API wrapper for database page operations.

    Attributes:
        token: Notion integration token
        session: requests.Session carrying the auth and version headers

    Usage:
        api = NotionAPI(token)

        # All pages linked to a Google contact
        pages = api.query_database(database_id)

        # Create or update a page from a write payload
        api.create_page(payload)
        api.update_page(payload)
    """

    def __init__(
        self,
        token: str,
        notion_version: str = DEFAULT_NOTION_VERSION,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """
        Initialize the Notion API wrapper.

        Args:
            token: Notion integration token with access to the database
            notion_version: Value of the Notion-Version header
            page_size: Number of pages per query (default 100)
            max_retries: Maximum retry attempts for failed API calls (default 5)
            initial_retry_delay: Initial backoff delay in seconds (default 1.0)
            max_retry_delay: Maximum backoff delay in seconds (default 60.0)
            timeout: Timeout in seconds for each HTTP request
            session: Optional requests.Session to use
        """
        if not token:
            raise ValueError("A Notion integration token is required")

        self.token = token
        self.notion_version = notion_version
        self.page_size = min(page_size, 100)  # API max is 100
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Notion-Version": notion_version,
                "Content-Type": "application/json",
            }
        )

    def _request(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Send a request to the Notion API with retries.

        Args:
            method: HTTP method
            path: Path relative to the API root (e.g. "/pages")
            body: Optional JSON body

        Returns:
            Decoded JSON response

        Raises:
            NotionRateLimitError: If retries are exhausted due to rate limits
            NotionAPIError: For other API errors
        """
        url = f"{NOTION_API_URL}{path}"
        operation_name = f"{method} {path}"

        def execute() -> requests.Response:
            response = self.session.request(
                method, url, json=body, timeout=self.timeout
            )
            response.raise_for_status()
            return response

        response = self._retry_with_backoff(execute, operation_name)
        data: dict[str, Any] = response.json()
        return data

    def _retry_with_backoff(
        self, operation: Callable[[], Any], operation_name: str
    ) -> Any:
        """
        Execute an operation with exponential backoff retry.

        Args:
            operation: Callable to execute
            operation_name: Name for logging purposes

        Returns:
            Result of the operation

        Raises:
            NotionRateLimitError: If retries are exhausted due to rate limits
            NotionAPIError: For other API errors
        """
        delay = self.initial_retry_delay

        for attempt in range(self.max_retries):
            try:
                return operation()

            except requests.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else 0

                if status_code == 429:
                    if attempt < self.max_retries - 1:
                        # Notion tells us how long to wait
                        retry_after = e.response.headers.get("Retry-After")
                        wait = float(retry_after) if retry_after else delay
                        logger.warning(
                            f"{operation_name} rate limited, retrying in "
                            f"{wait:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                        )
                        time.sleep(wait)
                        delay = min(delay * 2, self.max_retry_delay)
                        continue
                    else:
                        raise NotionRateLimitError(
                            f"Rate limit exceeded for {operation_name} "
                            f"after {self.max_retries} retries"
                        ) from e

                if status_code >= 500 and attempt < self.max_retries - 1:
                    logger.warning(
                        f"{operation_name} server error ({status_code}), "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, self.max_retry_delay)
                    continue

                logger.error(
                    f"{operation_name} failed with status {status_code}: "
                    f"{self._error_message(e)}"
                )
                raise NotionAPIError(
                    f"{operation_name} failed: {self._error_message(e)}"
                ) from e

            except RequestException as e:
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"{operation_name} connection error ({e}), "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, self.max_retry_delay)
                    continue
                raise NotionAPIError(f"{operation_name} failed: {e}") from e

        raise NotionAPIError(f"{operation_name} failed after all retries")

    @staticmethod
    def _error_message(error: requests.HTTPError) -> str:
        """Extract Notion's error message from an HTTP error, if present."""
        response = error.response
        if response is None:
            return str(error)
        try:
            return str(response.json().get("message", error))
        except ValueError:
            return str(error)

    def query_database(
        self,
        database_id: str,
        query_filter: dict[str, Any] | None = LINKED_CONTACTS_FILTER,
    ) -> list[dict[str, Any]]:
        """
        Query all pages of a database, following pagination.

        By default only pages with a non-empty contactId are returned, so
        pages created by hand in Notion are left alone.

        Args:
            database_id: Notion database ID
            query_filter: Notion filter object, or None for every page

        Returns:
            List of page dictionaries

        Raises:
            NotionAPIError: If the query fails
        """
        logger.debug(f"Querying Notion database {database_id}")

        pages: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            body: dict[str, Any] = {"page_size": self.page_size}
            if query_filter:
                body["filter"] = query_filter
            if cursor:
                body["start_cursor"] = cursor

            response = self._request("POST", f"/databases/{database_id}/query", body)
            pages.extend(response.get("results", []))

            cursor = response.get("next_cursor")
            if not response.get("has_more") or not cursor:
                break

        logger.info(f"Queried {len(pages)} Notion pages")
        return pages

    def create_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create a database page.

        Args:
            payload: Body with parent and properties

        Returns:
            The created page object

        Raises:
            NotionAPIError: If creation fails
        """
        body = {key: value for key, value in payload.items() if key != "page_id"}
        page = self._request("POST", "/pages", body)
        logger.debug(f"Created Notion page {page.get('id')}")
        return page

    def update_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Update the properties of an existing page.

        Args:
            payload: Body with page_id and properties; parent is ignored

        Returns:
            The updated page object

        Raises:
            ValueError: If page_id is missing
            NotionAPIError: If the update fails
        """
        page_id = payload.get("page_id")
        if not page_id:
            raise ValueError("page_id is required for update")

        body = {"properties": payload.get("properties", {})}
        page = self._request("PATCH", f"/pages/{page_id}", body)
        logger.debug(f"Updated Notion page {page_id}")
        return page
