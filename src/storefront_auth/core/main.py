"""Main FastAPI application."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Iterable

from fastapi import FastAPI, Request
from fastapi.routing import APIRoute
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import BaseRoute

from storefront_auth.api.v1 import shops
from storefront_auth.core.database import build_engine, build_session_factory, create_tables
from storefront_auth.core.dependencies import get_settings
from storefront_auth.core.errors import InstallFlowError, install_flow_error_handler
from storefront_auth.core.nonces import NonceRegistry
from storefront_auth.core.orchestrator import InstallOrchestrator
from storefront_auth.core.settings import ShopifySettings
from storefront_auth.core.store import CredentialStore
from storefront_auth.core.webhooks import UninstallHandler
from storefront_auth.plugins.shopify import create_shopify_router
from storefront_auth.plugins.shopify_api import ShopifyClient

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("api")


# Request tracing middleware
class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Request tracing middleware."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        # Query strings, headers and bodies carry codes and signatures; only the path is logged.
        logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        logger.info(f"Response status: {response.status_code}")
        return response


def ensure_unique_routes(routes: Iterable[BaseRoute]) -> None:
    """Fail if two handlers are bound to the same method and path.

    Takes the routes of every router before they are mounted; the routes of
    an included router are not listed on the application.
    """
    seen: set[tuple[str, str]] = set()
    for route in routes:
        if not isinstance(route, APIRoute):
            continue
        for method in route.methods:
            key = (method, route.path)
            if key in seen:
                raise RuntimeError(f"Duplicate route binding: {method} {route.path}")
            seen.add(key)


def create_app(
    settings: ShopifySettings | None = None,
    shopify_client: ShopifyClient | None = None,
) -> FastAPI:
    """Build the application and its components from ``settings``."""
    settings = settings or get_settings()

    engine = build_engine(settings.database_url)
    store = CredentialStore(build_session_factory(engine))
    nonces = NonceRegistry(ttl_seconds=settings.nonce_ttl_seconds)
    shopify = shopify_client or ShopifyClient(settings)
    orchestrator = InstallOrchestrator(settings, nonces, store, shopify)
    uninstall_handler = UninstallHandler(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan for the FastAPI application."""
        logger.info("Initializing database...")
        create_tables(engine)
        sweeper = asyncio.create_task(
            nonces.run_sweeper(settings.nonce_sweep_interval_seconds)
        )
        yield
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await shopify.close()
        engine.dispose()

    app = FastAPI(
        title="Storefront Auth API",
        description="Shopify app install and credential lifecycle",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.credential_store = store
    app.state.nonces = nonces
    app.state.orchestrator = orchestrator

    # Add request tracing middleware
    app.add_middleware(RequestTracingMiddleware)
    app.add_exception_handler(InstallFlowError, install_flow_error_handler)

    # Include routers
    routers = [create_shopify_router(orchestrator, uninstall_handler)]
    if settings.debug_routes:
        routers.append(shops.router)
    ensure_unique_routes(route for router in routers for route in router.routes)
    for router in routers:
        app.include_router(router)

    return app


app = create_app()
