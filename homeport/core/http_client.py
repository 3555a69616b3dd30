"""
HTTP client abstraction for Homeport.

Provides a unified interface for calling cloud REST APIs with consistent
error handling, authentication, retry logic and cooperative cancellation.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import HTTPError as RequestsHTTPError
from requests.exceptions import RequestException
from requests.exceptions import Timeout as RequestsTimeout
from urllib3.util.retry import Retry

from homeport.core.cancellation import CancellationToken, check_cancelled
from homeport.core.errors import HomeportError


class HTTPError(HomeportError):
    """Raised when an HTTP request fails."""

    def __init__(
        self,
        status_code: int,
        message: str,
        response_text: str | None = None,
    ):
        """
        Initialise HTTP error.

        Args:
            status_code: HTTP status code.
            message: Error message.
            response_text: Optional response body text.

        """
        self.status_code = status_code
        self.response_text = response_text

        full_message = f"HTTP {status_code}: {message}"
        if response_text:
            full_message += f"\nResponse: {response_text[:500]}"

        super().__init__(full_message, self._get_suggestion(status_code))

    @staticmethod
    def _get_suggestion(status_code: int) -> str:
        """Get helpful suggestion based on status code."""
        if status_code == 401:
            return "The access token was rejected. Refresh your credentials."
        elif status_code == 403:
            return (
                "The credentials lack permission for this API, or the API is "
                "not enabled for the project."
            )
        elif status_code == 404:
            return "The requested resource or API endpoint was not found."
        elif status_code == 429:
            return "Rate limit exceeded. Wait a moment and try again."
        elif 500 <= status_code < 600:
            return "The API service is experiencing issues. Try again later."
        return "Check the API documentation for this error code."


class HTTPClient:
    """
    HTTP client with bearer authentication and error handling.

    Endpoints may be relative to ``base_url`` or absolute HTTPS URLs, since
    cloud providers spread their services over many hosts.
    """

    def __init__(
        self,
        base_url: str = "",
        token_provider: Callable[[], str | None] | None = None,
        timeout: int = 60,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        user_agent: str = "Homeport/1.0",
    ):
        """
        Initialise HTTP client.

        Args:
            base_url: Base URL for relative endpoints.
            token_provider: Callable returning a fresh bearer token.
            timeout: Request timeout in seconds.
            max_retries: Maximum number of retry attempts.
            backoff_factor: Exponential backoff multiplier for retries.
            user_agent: User-Agent header value.

        Raises:
            HomeportError: If base_url does not use HTTPS or limits are invalid.

        """
        self.base_url = base_url.rstrip("/")
        if self.base_url:
            self._require_https(self.base_url)

        if not 1 <= timeout <= 300:
            raise HomeportError(
                f"Invalid timeout value: {timeout}",
                "Timeout must be between 1 and 300 seconds",
            )
        if not 0 <= max_retries <= 10:
            raise HomeportError(
                f"Invalid max_retries value: {max_retries}",
                "max_retries must be between 0 and 10",
            )
        if not 0.1 <= backoff_factor <= 10:
            raise HomeportError(
                f"Invalid backoff_factor value: {backoff_factor}",
                "backoff_factor must be between 0.1 and 10",
            )

        self.token_provider = token_provider
        self.timeout = timeout
        self.user_agent = user_agent

        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        self.session.mount("https://", HTTPAdapter(max_retries=retry_strategy))

    @staticmethod
    def _require_https(url: str) -> None:
        if urlparse(url).scheme != "https":
            raise HomeportError(
                "Insecure HTTP connection not allowed",
                "Use HTTPS for secure communication with the API.",
            )

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith(("https://", "http://")):
            self._require_https(endpoint)
            return endpoint
        if not self.base_url:
            raise HomeportError(
                f"Relative endpoint '{endpoint}' given without a base URL",
                "Pass an absolute HTTPS URL or configure base_url.",
            )
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.token_provider is not None:
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def _handle_request_error(
        self,
        error: Exception,
        url: str,
        timeout_value: int,
        response: requests.Response | None = None,
    ) -> None:
        """
        Translate requests exceptions into Homeport errors.

        Raises:
            HTTPError: For HTTP-specific errors with status codes.
            HomeportError: For other request failures.

        """
        if isinstance(error, RequestsHTTPError):
            if response is not None:
                raise HTTPError(
                    response.status_code,
                    str(error),
                    response.text,
                ) from error
            raise HomeportError(
                f"HTTP request failed: {error}",
                "Check the API endpoint and your network connection.",
            ) from error
        elif isinstance(error, RequestsTimeout):
            raise HomeportError(
                f"Request timed out after {timeout_value} seconds",
                "The API service may be slow or unresponsive. Try increasing "
                "the timeout value or try again later.",
            ) from error
        elif isinstance(error, RequestsConnectionError):
            raise HomeportError(
                f"Failed to connect to {url}",
                "Check your network connection and proxy settings.",
            ) from error
        raise HomeportError(
            f"Request failed: {error}",
            "Check the API documentation and your request parameters.",
        ) from error

    def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """
        Make a GET request.

        Args:
            endpoint: Relative endpoint or absolute HTTPS URL.
            params: Query parameters.
            timeout: Request timeout (overrides default).

        Returns:
            JSON response data.

        Raises:
            HTTPError: If the request fails with a status code.
            HomeportError: If the request fails otherwise.

        """
        url = self._build_url(endpoint)
        timeout_value = timeout if timeout is not None else self.timeout

        response = None
        try:
            response = self.session.get(
                url,
                params=params,
                headers=self._get_headers(),
                timeout=timeout_value,
            )
            response.raise_for_status()
        except RequestException as e:
            self._handle_request_error(e, url, timeout_value, response)
            raise  # pragma: no cover

        try:
            json_response = response.json()
        except ValueError as e:
            raise HomeportError(
                f"Invalid JSON in response from {url}",
                "The API returned an unexpected response format.",
            ) from e

        if not isinstance(json_response, dict):
            raise HomeportError(
                f"Expected JSON object response, got {type(json_response).__name__}",
                "The API returned an unexpected response format.",
            )
        return json_response

    def paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        cancel_token: CancellationToken | None = None,
        token_field: str = "nextPageToken",
        param_name: str = "pageToken",
    ) -> Iterator[dict[str, Any]]:
        """
        Yield every page of a token-paginated list endpoint.

        The cancel token is checked before each page request.

        Raises:
            OperationCancelledError: If cancelled between pages.

        """
        query = dict(params or {})
        while True:
            check_cancelled(cancel_token, f"GET {endpoint}")
            page = self.get(endpoint, params=query)
            yield page
            next_token = page.get(token_field)
            if not next_token:
                return
            query[param_name] = next_token

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self) -> HTTPClient:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager and close session."""
        self.close()
