"""Transport protocol and the aiohttp implementation.

Architecture:
    Resource operations talk to the server only through ``WriteTransport``.
    Calls name a logical endpoint (``"assets/create"``) rather than a URL;
    ``CDFTransport`` maps logical endpoints to HTTP method and path through
    a table of EndpointSpec entries, attaches authentication and turns
    failures into the library's exception types.

Design Decisions:
    - Non-2xx responses become ResponseError carrying the structured
      ``missing``/``duplicated`` lists from the standard error body
    - aiohttp client errors and timeouts become TransportError
    - Tests substitute an in-memory transport implementing the protocol
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import aiohttp

from ..core.exceptions import ResponseError, TransportError
from .http import HTTPClient, HTTPResponse

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str]]


@runtime_checkable
class WriteTransport(Protocol):
    """Remote side of every bulk operation."""

    async def invoke(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        path: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Call ``endpoint`` and return the ``items`` of the response.

        Raises:
            ResponseError: The server rejected the request
            TransportError: No response was received
        """
        ...

    async def fetch_page(
        self,
        endpoint: str,
        *,
        path: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """Fetch one page of a listing endpoint.

        Returns:
            Tuple of (items, next cursor or None on the last page)
        """
        ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class EndpointSpec:
    id: str
    method: str  # "GET" | "POST"
    path: str  # Format string, filled from the ``path`` argument


ENDPOINTS: dict[str, EndpointSpec] = {
    spec.id: spec
    for spec in (
        EndpointSpec("assets/create", "POST", "/assets"),
        EndpointSpec("assets/byids", "POST", "/assets/byids"),
        EndpointSpec("assets/update", "POST", "/assets/update"),
        EndpointSpec("events/create", "POST", "/events"),
        EndpointSpec("events/byids", "POST", "/events/byids"),
        EndpointSpec("timeseries/create", "POST", "/timeseries"),
        EndpointSpec("timeseries/byids", "POST", "/timeseries/byids"),
        EndpointSpec("timeseries/update", "POST", "/timeseries/update"),
        EndpointSpec("sequences/create", "POST", "/sequences"),
        EndpointSpec("sequences/byids", "POST", "/sequences/byids"),
        EndpointSpec("sequences/rows/insert", "POST", "/sequences/data"),
        EndpointSpec("datapoints/insert", "POST", "/timeseries/data"),
        EndpointSpec("raw/rows/insert", "POST", "/raw/dbs/{db}/tables/{table}/rows"),
        EndpointSpec("raw/rows/list", "GET", "/raw/dbs/{db}/tables/{table}/rows"),
        EndpointSpec("raw/rows/delete", "POST", "/raw/dbs/{db}/tables/{table}/rows/delete"),
    )
}


def parse_error_response(response: HTTPResponse) -> ResponseError:
    """Build a ResponseError from a non-2xx response.

    The standard body is ``{"error": {"code", "message", "missing",
    "duplicated"}}``; anything else falls back to the raw body as message.
    """
    body = response.body
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = str(error.get("message") or "")
        missing = error.get("missing")
        duplicated = error.get("duplicated")
    else:
        message = body if isinstance(body, str) else str(body or "")
        missing = duplicated = None
    return ResponseError(
        message,
        response.status,
        missing=missing if isinstance(missing, list) else None,
        duplicated=duplicated if isinstance(duplicated, list) else None,
        request_id=response.headers.get("x-request-id"),
    )


class CDFTransport:
    """aiohttp-backed WriteTransport for one project.

    Example:
        async def token() -> str:
            return os.environ["CDF_TOKEN"]

        async with CDFTransport("my-project", "https://api.example.com", token) as transport:
            writer = BulkWriter(transport)
    """

    def __init__(
        self,
        project: str,
        base_url: str,
        token_provider: TokenProvider,
        timeout: float = 30.0,
        *,
        http: HTTPClient | None = None,
    ) -> None:
        """Initialize transport.

        Args:
            project: Project name, part of every path
            base_url: Cluster URL, e.g. ``https://api.example.com``
            token_provider: Async callable returning a bearer token
            timeout: Total timeout per request in seconds
            http: Optional HTTP client, mainly for tests
        """
        self._project = project
        self._token_provider = token_provider
        self._http = http or HTTPClient(
            base_url=f"{base_url.rstrip('/')}/api/v1/projects/{project}",
            timeout=timeout,
        )

    async def _headers(self) -> dict[str, str]:
        token = await self._token_provider()
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    async def _call(
        self,
        endpoint: str,
        payload: dict[str, Any] | None,
        path: dict[str, str] | None,
        query: dict[str, Any] | None,
    ) -> Any:
        spec = ENDPOINTS.get(endpoint)
        if spec is None:
            raise ValueError(f"Unknown endpoint: {endpoint}")
        url = spec.path.format(**(path or {}))
        try:
            response = await self._http.request(
                spec.method,
                url,
                json_body=payload if spec.method == "POST" else None,
                params=query,
                headers=await self._headers(),
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "transport_error",
                extra={"endpoint": endpoint, "error_type": type(e).__name__, "error_message": str(e)},
            )
            raise TransportError(f"{endpoint}: {type(e).__name__}: {e}") from e

        if not response.ok:
            raise parse_error_response(response)
        return response.body

    async def invoke(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        path: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        body = await self._call(endpoint, payload, path, query)
        if isinstance(body, dict):
            return list(body.get("items") or [])
        return []

    async def fetch_page(
        self,
        endpoint: str,
        *,
        path: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        body = await self._call(endpoint, None, path, query)
        if not isinstance(body, dict):
            return [], None
        return list(body.get("items") or []), body.get("nextCursor")

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> CDFTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
