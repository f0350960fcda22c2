"""HTTP client helper."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import aiohttp

ResponseHook = Callable[["HTTPResponse"], Awaitable[None] | None]


@dataclass
class HTTPResponse:
    """Status, decoded JSON body and headers of one response."""

    status: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HTTPClient:
    """Async HTTP client wrapper.

    Unlike ``raise_for_status`` based clients, non-2xx responses are
    returned to the caller so that structured error bodies can be parsed.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        response_hooks: list[ResponseHook] | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._response_hooks = list(response_hooks or [])

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def add_response_hook(self, hook: ResponseHook) -> None:
        """Register a callback run on every response, e.g. for logging."""
        self._response_hooks.append(hook)

    def _url(self, url: str) -> str:
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url}{url}"
        return url

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> HTTPResponse:
        """Send one request and decode its JSON body.

        A body that is not JSON is returned as text.
        """
        async with self.session.request(
            method, self._url(url), json=json_body, params=params, headers=headers
        ) as response:
            try:
                body: Any = await response.json(content_type=None)
            except ValueError:
                body = await response.text()
            result = HTTPResponse(
                status=response.status,
                body=body,
                headers={key.lower(): value for key, value in response.headers.items()},
            )
        for hook in self._response_hooks:
            outcome = hook(result)
            if outcome is not None:
                await outcome
        return result

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
