"""Shopify plugin module.

This module provides the API endpoints of the Shopify integration: the install
entry point, the OAuth initiation and callback, and the ``app/uninstalled``
webhook that revokes a shop's stored credentials.

The routes are thin. Validation, signature and state checks, the token
exchange and persistence all live in the orchestrator and the uninstall
handler, and their errors are rendered by the application's exception handler.
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import RedirectResponse

from storefront_auth.core.orchestrator import InstallOrchestrator
from storefront_auth.core.webhooks import UninstallHandler

# Setup module-level logger
logger = logging.getLogger("shopify")


def create_shopify_router(
    orchestrator: InstallOrchestrator,
    uninstall_handler: UninstallHandler,
) -> APIRouter:
    """Create a router for the Shopify install flow."""

    router = APIRouter()

    @router.get("/", response_model=None)
    async def root(shop: str | None = None) -> RedirectResponse | dict:
        """App URL; Shopify opens it with ``?shop=`` to start an install."""
        if not shop:
            return {"message": "Welcome to the Storefront Auth API"}
        return RedirectResponse(
            f"/auth?{urlencode({'shop': shop})}", status_code=status.HTTP_302_FOUND
        )

    @router.get("/auth")
    async def initiate_oauth(shop: str | None = None) -> RedirectResponse:
        """Initiate OAuth flow."""
        oauth_url = orchestrator.begin_install(shop)
        logger.info("Redirecting to Shopify authorization for shop: %r", shop)
        return RedirectResponse(oauth_url, status_code=status.HTTP_302_FOUND)

    @router.get("/auth/callback")
    async def oauth_callback(request: Request) -> RedirectResponse:
        """
        Handle OAuth callback from Shopify.

        Verifies the request signature and the echoed state, exchanges the
        authorization code for an access token, stores it and sends the
        merchant to the app inside Shopify Admin.

        Args:
            request (Request): The incoming request; its query carries shop,
                code, state, timestamp and hmac.
        """
        logger.info("OAuth callback received")
        result = await orchestrator.complete_install(dict(request.query_params))
        logger.info("Install complete for shop: %s", result.shop)
        return RedirectResponse(url=result.redirect_url, status_code=status.HTTP_302_FOUND)

    @router.post("/webhooks/app-uninstalled")
    async def app_uninstalled(
        request: Request,
        x_shopify_hmac_sha256: str | None = Header(None, alias="X-Shopify-Hmac-Sha256"),
        x_shopify_shop_domain: str | None = Header(None, alias="X-Shopify-Shop-Domain"),
        x_shopify_topic: str | None = Header(None, alias="X-Shopify-Topic"),
    ) -> dict:
        """
        Handle app/uninstalled webhook.

        Called when the merchant uninstalls the app. Deletes the stored
        credentials; repeated deliveries are accepted.
        """
        body = await request.body()
        logger.info(
            "Received webhook",
            extra={"topic": x_shopify_topic, "shop_domain": x_shopify_shop_domain},
        )
        await uninstall_handler.handle_uninstall(
            body, x_shopify_hmac_sha256, x_shopify_shop_domain
        )
        return {"status": "processed"}

    return router
