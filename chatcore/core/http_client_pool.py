"""Shared HTTP client pool for provider and collaborator connections.

Manages :class:`httpx.AsyncClient` instances keyed by service name, enabling
TCP connection reuse across every component that talks to the same backend.
Lifecycle is tied to the FastAPI application lifespan.
"""

import httpx
from aiohttp import ClientSession
from azure.core.pipeline.transport import AioHttpTransport, AsyncHttpTransport


class HttpClientPool:
    """Manages shared ``httpx.AsyncClient`` instances per service."""

    def __init__(self) -> None:
        self._clients: dict[str, httpx.AsyncClient] = {}
        self._aiohttp_session: ClientSession | None = None

    def get(
        self,
        service: str,
        *,
        timeout: float = 60.0,
        max_connections: int = 100,
        max_keepalive: int = 20,
        headers: dict[str, str] | None = None,
    ) -> httpx.AsyncClient:
        """Get or create a shared HTTP client for *service*.

        The client is created lazily on first access and reused thereafter;
        options passed on later calls are ignored.
        """
        if service not in self._clients:
            self._clients[service] = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                limits=httpx.Limits(
                    max_connections=max_connections,
                    max_keepalive_connections=max_keepalive,
                ),
                headers=headers,
            )
        return self._clients[service]

    def get_azure_transport(self) -> AsyncHttpTransport:
        """Get a shared Azure transport backed by one aiohttp session."""
        if self._aiohttp_session is None or self._aiohttp_session.closed:
            self._aiohttp_session = ClientSession()

        # The transport borrows the shared session and must not close it
        return AioHttpTransport(
            session=self._aiohttp_session,
            session_owner=False,
        )

    async def close_all(self) -> None:
        """Close all managed HTTP clients.  Call during app shutdown."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

        if self._aiohttp_session and not self._aiohttp_session.closed:
            await self._aiohttp_session.close()
