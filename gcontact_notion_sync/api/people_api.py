"""
Google People API wrapper for reading the source address book.

Provides a high-level interface to the Google People API for:
- Listing all connections of the authenticated user with pagination
- Exponential backoff retry logic for rate limits and server errors
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

# Person fields to request from the API
PERSON_FIELDS = ",".join(
    [
        "names",
        "emailAddresses",
        "organizations",
    ]
)

# Maximum number of connections per page when listing
DEFAULT_PAGE_SIZE = 1000

# Retry configuration defaults
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_RETRY_DELAY = 1.0  # seconds
DEFAULT_MAX_RETRY_DELAY = 60.0  # seconds

logger = logging.getLogger(__name__)


class PeopleAPIError(Exception):
    """Raised when a People API operation fails."""

    pass


class RateLimitError(PeopleAPIError):
    """Raised when rate limit is exceeded and retries are exhausted."""

    pass


class PeopleAPI:
    """
    Google People API wrapper for reading connections.

    Attributes:
        credentials: Google OAuth2 credentials
        service: Google API service object

    Usage:
        api = PeopleAPI(credentials)

        # Raw connection dictionaries, all pages
        connections = api.list_connections()
    """

    def __init__(
        self,
        credentials: Credentials,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
    ):
        """
        Initialize the People API wrapper.

        Args:
            credentials: Valid Google OAuth2 credentials with contacts scope
            page_size: Number of connections per page (default 1000)
            max_retries: Maximum retry attempts for failed API calls (default 5)
            initial_retry_delay: Initial backoff delay in seconds (default 1.0)
            max_retry_delay: Maximum backoff delay in seconds (default 60.0)
        """
        self.credentials = credentials
        self.page_size = min(page_size, 1000)  # API max is 1000
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self._service = None

    @property
    def service(self) -> Any:
        """
        Get or create the Google API service object.

        Returns:
            Google People API service resource

        Raises:
            PeopleAPIError: If service cannot be created
        """
        if self._service is None:
            try:
                self._service = build(
                    "people", "v1", credentials=self.credentials, cache_discovery=False
                )
                logger.debug("Created People API service")
            except Exception as e:
                logger.error(f"Failed to create People API service: {e}")
                raise PeopleAPIError(f"Failed to create API service: {e}") from e
        return self._service

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
            RateLimitError: If retries are exhausted due to rate limits
            PeopleAPIError: For other API errors
        """
        delay = self.initial_retry_delay

        for attempt in range(self.max_retries):
            try:
                return operation()

            except HttpError as e:
                status_code = e.resp.status

                # Rate limit or quota exceeded - retry with backoff
                if status_code in (429, 403):
                    if attempt < self.max_retries - 1:
                        logger.warning(
                            f"{operation_name} rate limited, retrying in "
                            f"{delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                        )
                        time.sleep(delay)
                        delay = min(delay * 2, self.max_retry_delay)
                        continue
                    else:
                        raise RateLimitError(
                            f"Rate limit exceeded for {operation_name} "
                            f"after {self.max_retries} retries"
                        ) from e

                # Server error - retry with backoff
                if status_code >= 500 and attempt < self.max_retries - 1:
                    logger.warning(
                        f"{operation_name} server error ({status_code}), "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, self.max_retry_delay)
                    continue

                # Other errors - don't retry
                logger.error(f"{operation_name} failed with status {status_code}: {e}")
                raise PeopleAPIError(f"{operation_name} failed: {e}") from e

        raise PeopleAPIError(f"{operation_name} failed after all retries")

    def list_connections(self) -> list[dict[str, Any]]:
        """
        List all connections of the authenticated user.

        Connections are returned as raw People API dictionaries; they are
        normalized by the sync engine, which also decides which ones are
        eligible for syncing.

        Returns:
            List of connection dictionaries from every page

        Raises:
            PeopleAPIError: If listing fails
            RateLimitError: If rate limit exceeded
        """
        logger.debug("Listing Google connections")

        connections: list[dict[str, Any]] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "resourceName": "people/me",
                "personFields": PERSON_FIELDS,
                "pageSize": self.page_size,
            }

            if page_token:
                params["pageToken"] = page_token

            def execute_list(p: dict[str, Any] = params) -> Any:
                return self.service.people().connections().list(**p).execute()

            response = self._retry_with_backoff(execute_list, "list_connections")

            connections.extend(response.get("connections", []))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Listed {len(connections)} connections")
        return connections
