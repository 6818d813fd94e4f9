from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP
from starlette.applications import Starlette

from storefront.application.catalog_service import CatalogService
from storefront.infrastructure.cache import TTLCache
from storefront.infrastructure.config import Settings
from storefront.infrastructure.supabase_client import SupabaseClient
from storefront.mcp.tools import register_tools

logger = logging.getLogger(__name__)


@dataclass
class StorefrontApp:
    """The MCP server together with the resources it owns."""

    mcp: FastMCP
    cache: TTLCache
    client: SupabaseClient

    async def shutdown(self) -> None:
        """Drop the cache and close the shared HTTP client."""
        self.cache.shutdown()
        await self.client.close()
        logger.info("Storefront services shut down")

    def http_app(self) -> Starlette:
        """Streamable HTTP app whose lifespan ends with shutdown()."""
        app = self.mcp.streamable_http_app()
        session_lifespan = app.router.lifespan_context

        @contextlib.asynccontextmanager
        async def lifespan(starlette_app: Starlette) -> AsyncIterator[None]:
            try:
                async with session_lifespan(starlette_app):
                    yield
            finally:
                await self.shutdown()

        app.router.lifespan_context = lifespan
        return app

    async def run_stdio(self) -> None:
        try:
            await self.mcp.run_stdio_async()
        finally:
            await self.shutdown()


def create_mcp_app(settings: Settings | None = None) -> StorefrontApp:
    """Create and configure the FastMCP application with all services wired.

    Raises ConfigurationError when the Supabase settings are missing.
    """
    settings = settings if settings is not None else Settings.from_env()
    settings.validate()

    cache = TTLCache(default_ttl=settings.cache_default_ttl, capacity=settings.cache_capacity)
    http_client = httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)
    supabase = SupabaseClient(settings.supabase_url, settings.supabase_anon_key, http_client)

    catalog_svc = CatalogService(
        supabase,
        cache,
        retry_attempts=settings.retry_attempts,
        retry_delay=settings.retry_delay,
    )

    mcp = FastMCP("Storefront Catalog", stateless_http=True)
    register_tools(mcp, catalog_svc, cache)
    return StorefrontApp(mcp=mcp, cache=cache, client=supabase)
