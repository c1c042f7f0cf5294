"""Fetch client factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from auth import TokenAuthorizationProvider
from core.config import Config
from core.middleware import AdmissionMiddleware
from core.protocols import AuthorizationProvider, Navigator
from services.fetch import FetchClient
from services.navigation import LogNavigator
from services.transport import HttpxTransport


@asynccontextmanager
async def create_client(
    config: Config,
    *,
    auth: AuthorizationProvider | None = None,
    navigator: Navigator | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[FetchClient]:
    """Create a FetchClient that owns its HTTP connection pool."""
    navigator = navigator or LogNavigator()
    limits = httpx.Limits(max_connections=100, max_keepalive_connections=20)
    http_client = httpx.AsyncClient(
        timeout=config.client.timeout,
        limits=limits,
        follow_redirects=False,
        transport=http_transport,
    )
    middleware = None
    if config.middleware.enabled:
        middleware = AdmissionMiddleware(config.middleware.debounce_interval_ms)

    try:
        yield FetchClient(
            auth or TokenAuthorizationProvider(config.auth, navigator),
            HttpxTransport(http_client),
            navigator=navigator,
            middleware=middleware,
            base_url=config.client.base_url,
            default_headers=config.client.default_headers,
            enable_debug=config.client.debug,
        )
    finally:
        await http_client.aclose()
