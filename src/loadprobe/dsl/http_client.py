"""Instrumented HTTP client with auto-timing, connection reuse and metric emission."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadprobe._internal.types import Headers

Phase = Literal["setup", "iteration", "teardown"]


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping (e.g., "GET /api/users").
        method: HTTP method (GET, POST, etc.).
        url: Full request URL.
        status_code: HTTP response status code (0 if the request failed).
        latency_ms: Response time in milliseconds, body included.
        content_length: Response body size in bytes.
        error: Error message if the request failed, None otherwise.
        worker_id: ID of the worker that made the request.
        phase: Run phase that issued the request.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int
    error: str | None = None
    worker_id: int = 0
    phase: Phase = "iteration"

    @property
    def is_error(self) -> bool:
        """True for transport errors and HTTP statuses >= 400."""
        return self.error is not None or self.status_code >= 400


@dataclass
class FailedResponse:
    """Stand-in response for a request that never got an HTTP status.

    Returned instead of raising when the client runs with
    ``raise_on_error=False``, so checks such as ``r.status == 200`` simply
    evaluate to False.

    Attributes:
        method: HTTP method of the failed request.
        url: Full request URL.
        error: ``"<ExceptionType>: <message>"`` describing the failure.
        status: Always 0.
        headers: Always empty.
    """

    method: str
    url: str
    error: str
    status: int = 0
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Always False."""
        return False


Response = aiohttp.ClientResponse | FailedResponse


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    One client belongs to one virtual user (or to the setup/teardown phase).
    The underlying ``TCPConnector`` keeps connections alive so consecutive
    iterations reuse them. Every request is timed and reported through
    ``metric_callback``. Response bodies are read eagerly, which releases
    the connection back to the pool while keeping ``json()``/``text()``
    usable on the returned response.

    Attributes:
        base_url: Base URL as configured, prepended to relative request paths.
        headers: Mutable headers dict applied to every request.
        phase: Run phase tag attached to emitted metrics.
    """

    def __init__(
        self,
        base_url: str,
        headers: Headers | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        worker_id: int = 0,
        timeout: float = 30.0,
        *,
        pool_size: int = 100,
        raise_on_error: bool = True,
        phase: Phase = "iteration",
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Base URL prepended to relative request paths.
            headers: Default headers applied to every request.
            metric_callback: Called with a ``RequestMetric`` after each
                request. Defaults to a no-op.
            worker_id: Worker identifier for metric tagging.
            timeout: Total request timeout in seconds.
            pool_size: Maximum simultaneous connections.
            raise_on_error: If False, transport errors return a
                ``FailedResponse`` instead of raising.
            phase: Phase tag attached to emitted metrics.
        """
        self.base_url = base_url
        self.headers: Headers = dict(headers or {})
        self.phase: Phase = phase
        self._metric_callback = metric_callback or _noop_callback
        self._worker_id = worker_id
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._pool_size = pool_size
        self._raise_on_error = raise_on_error
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            timeout=self._timeout,
            connector=aiohttp.TCPConnector(limit=self._pool_size),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session and its connections."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def url_for(self, path: str) -> str:
        """Resolve ``path`` against ``base_url``; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url.rstrip('/')}{path}"

    async def get(self, path: str, *, name: str | None = None, **kwargs: object) -> Response:
        """Send a GET request."""
        return await self._request("GET", path, name=name, **kwargs)

    async def post(self, path: str, *, name: str | None = None, **kwargs: object) -> Response:
        """Send a POST request."""
        return await self._request("POST", path, name=name, **kwargs)

    async def put(self, path: str, *, name: str | None = None, **kwargs: object) -> Response:
        """Send a PUT request."""
        return await self._request("PUT", path, name=name, **kwargs)

    async def patch(self, path: str, *, name: str | None = None, **kwargs: object) -> Response:
        """Send a PATCH request."""
        return await self._request("PATCH", path, name=name, **kwargs)

    async def delete(self, path: str, *, name: str | None = None, **kwargs: object) -> Response:
        """Send a DELETE request."""
        return await self._request("DELETE", path, name=name, **kwargs)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> Response:
        """Send an HTTP request with auto-timing and metric emission.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: URL path appended to base_url, or an absolute URL.
            name: Logical name for metric grouping. Defaults to
                ``"<METHOD> <path>"``.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The aiohttp response with its body already read, or a
            ``FailedResponse`` when the request failed and
            ``raise_on_error`` is False.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
            aiohttp.ClientError: On transport failure when ``raise_on_error``
                is True.
            TimeoutError: On timeout when ``raise_on_error`` is True.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = self.url_for(path)
        metric_name = name or f"{method} {path}"
        extra_headers = kwargs.pop("headers", None) or {}
        merged_headers = {**self.headers, **extra_headers}  # type: ignore[dict-item]

        start = time.monotonic()
        status_code = 0
        content_length = 0
        error: str | None = None

        try:
            resp = await self._session.request(
                method,
                url,
                headers=merged_headers,
                **kwargs,  # type: ignore[arg-type]
            )
            status_code = resp.status
            body = await resp.read()
            content_length = len(body)
        except (aiohttp.ClientError, TimeoutError) as exc:
            error = f"{type(exc).__name__}: {exc}"
            if self._raise_on_error:
                raise
            return FailedResponse(method=method, url=url, error=error)
        except asyncio.CancelledError:
            error = "CancelledError: request cancelled"
            raise
        finally:
            latency_ms = (time.monotonic() - start) * 1000
            self._metric_callback(
                RequestMetric(
                    timestamp=start,
                    name=metric_name,
                    method=method,
                    url=url,
                    status_code=status_code,
                    latency_ms=latency_ms,
                    content_length=content_length,
                    error=error,
                    worker_id=self._worker_id,
                    phase=self.phase,
                )
            )

        return resp
