# ABOUTME: HTTP client abstraction for metadata provider API calls and page scraping.
# ABOUTME: Provides rate limiting, opt-in retry with backoff, and injectable transport for testing.

import logging
import re
import threading
import time
from typing import Any, Protocol, runtime_checkable

import httpx

from lectern import __version__

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_API_KEY_RE = re.compile(r"([?&]apikey=)[^&]+", re.IGNORECASE)

DEFAULT_USER_AGENT = f"Lectern/{__version__}"


class MetadataFetchError(Exception):
    """Raised when an HTTP request to a metadata provider fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP GET operations against metadata APIs and HTML pages."""

    def get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any: ...

    def get_text(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str: ...


class LecternHttpClient:
    """HTTP client with rate limiting and optional retry for metadata calls.

    Wraps httpx.Client with a configurable request interval and timeout.
    Retries on 429/5xx are off by default: search adapters fail fast and
    leave re-issuing the search to the caller. The client is safe to share
    between the threads of one aggregation pass.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        min_request_interval: float = 0.0,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        verify: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": user_agent},
            "timeout": timeout,
            "verify": verify,
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_request_time: float = 0.0
        self._lock = threading.Lock()

    def get(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a GET request and decode the JSON body.

        Raises:
            MetadataFetchError: On transport errors, HTTP errors, exhausted
                retries, or a body that is not valid JSON.
        """
        response = self._request(url, params, headers)
        try:
            return response.json()
        except ValueError as exc:
            ctype = response.headers.get("content-type", "")
            raise MetadataFetchError(
                f"Invalid JSON (ct={ctype}) from {redact_api_key(url)}: {_snippet(response.text)}"
            ) from exc

    def get_text(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """Send a GET request and return the decoded body text."""
        return self._request(url, params, headers).text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "LecternHttpClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        url: str,
        params: dict[str, str] | None,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        self._rate_limit()

        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            try:
                response = self._client.get(url, params=params, headers=headers)
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise MetadataFetchError(f"Request failed: {redact_api_key(url)}: {exc}") from exc

            if response.is_success:
                return response

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise MetadataFetchError(
                    f"HTTP {response.status_code} from {redact_api_key(url)}: {_snippet(response.text)}",
                    status_code=response.status_code,
                )

            if attempt < attempts - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    redact_api_key(url),
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                time.sleep(delay)

        raise MetadataFetchError(
            f"HTTP {last_status} from {redact_api_key(url)} after {attempts} attempt(s)",
            status_code=last_status,
        )

    def _rate_limit(self) -> None:
        """Sleep if needed to maintain minimum interval between requests."""
        if self._min_interval <= 0:
            return
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval and self._last_request_time > 0:
                time.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()


def _snippet(text: str, limit: int = 200) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."


def redact_api_key(url: str) -> str:
    """Hide apikey query values so they never reach logs or error messages."""
    return _API_KEY_RE.sub(r"\1***", url)

