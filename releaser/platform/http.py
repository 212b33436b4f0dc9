"""HTTP client abstraction for the registry and source-host API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from releaser import __version__
from releaser.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    body: str


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Non-2xx responses are reported as Err(HttpError) with the status set.
    """

    def get(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Result[HttpResponse, HttpError]: ...

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object],
        headers: Mapping[str, str] | None = None,
    ) -> Result[HttpResponse, HttpError]: ...


class RealHttpClient:
    """HTTP client using urllib with system certificates."""

    def __init__(self, timeout: float = 30.0, user_agent: str = f"releaser/{__version__}") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _request(
        self,
        url: str,
        *,
        method: str,
        data: bytes | None,
        headers: Mapping[str, str] | None,
    ) -> Result[HttpResponse, HttpError]:
        all_headers = {"User-Agent": self.user_agent}
        if headers:
            all_headers.update(headers)
        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                body = response.read().decode("utf-8", errors="replace")
                return Ok(HttpResponse(status=response.status, body=body))
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def get(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Result[HttpResponse, HttpError]:
        return self._request(url, method="GET", data=None, headers=headers)

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object],
        headers: Mapping[str, str] | None = None,
    ) -> Result[HttpResponse, HttpError]:
        merged = {"Content-Type": "application/json"}
        if headers:
            merged.update(headers)
        data = json.dumps(payload).encode("utf-8")
        return self._request(url, method="POST", data=data, headers=merged)


class MockHttpClient:
    """Mock HTTP client for testing.

    Unknown URLs answer 404. Every call is recorded with its headers and
    payload so tests can assert on what would have been sent.

    Usage:
        client = MockHttpClient()
        client.set_response("https://api.github.com/repos/me/app", 200)
        client.get("https://api.github.com/repos/me/app")
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], HttpResponse | HttpError] = {}
        self.calls: list[tuple[str, str, dict[str, str], Mapping[str, object] | None]] = []

    def set_response(
        self, url: str, status: int = 200, body: str = "", *, method: str = "GET"
    ) -> None:
        self._responses[(method, url)] = HttpResponse(status=status, body=body)

    def set_error(self, url: str, error: HttpError, *, method: str = "GET") -> None:
        self._responses[(method, url)] = error

    def _answer(self, method: str, url: str) -> Result[HttpResponse, HttpError]:
        response = self._responses.get((method, url))
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        if response.status >= 400:
            return Err(HttpError(url=url, status=response.status, message=response.body))
        return Ok(response)

    def get(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Result[HttpResponse, HttpError]:
        self.calls.append(("GET", url, dict(headers or {}), None))
        return self._answer("GET", url)

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object],
        headers: Mapping[str, str] | None = None,
    ) -> Result[HttpResponse, HttpError]:
        self.calls.append(("POST", url, dict(headers or {}), payload))
        return self._answer("POST", url)
