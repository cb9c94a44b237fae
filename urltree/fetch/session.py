"""Factories for upstream HTTP sessions."""
from __future__ import annotations

import contextlib
from typing import AsyncIterator, Dict, Optional

import httpx


class UpstreamSession:
    """Thin wrapper over ``httpx.AsyncClient`` used to read the item feed."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str, *, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Issue a GET request and return the raw response."""
        return await self._client.get(url, headers=headers)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_client(
    *,
    user_agent: str,
    timeout: float,
    max_connections: int,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    headers = {"User-Agent": user_agent, "Accept": "application/json"}
    limits = httpx.Limits(max_connections=max_connections, max_keepalive_connections=max_connections)
    return httpx.AsyncClient(
        headers=headers,
        limits=limits,
        timeout=timeout,
        follow_redirects=True,
        transport=transport,
    )


@contextlib.asynccontextmanager
async def create_upstream_session(
    *,
    user_agent: str,
    timeout: float,
    max_connections: int = 4,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[UpstreamSession]:
    """Yield a configured `UpstreamSession` for the duration of the context."""
    client = build_client(
        user_agent=user_agent,
        timeout=timeout,
        max_connections=max_connections,
        transport=transport,
    )
    async with client:
        yield UpstreamSession(client)
