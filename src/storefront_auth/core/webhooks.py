"""
Uninstall webhook handling.

SECURITY:
- The body signature is verified before anything else is read
- The shop comes from the ``X-Shopify-Shop-Domain`` header, never the payload
- Deletion is idempotent, so Shopify redeliveries are accepted
"""

import logging

from starlette.concurrency import run_in_threadpool

from storefront_auth.core.errors import InvalidWebhookSignature, MissingParameters
from storefront_auth.core.settings import ShopifySettings
from storefront_auth.core.signatures import verify_webhook_hmac
from storefront_auth.core.store import CredentialStore

logger = logging.getLogger("webhooks")


class UninstallHandler:
    """Revokes a shop's stored credentials when Shopify reports an uninstall."""

    def __init__(self, settings: ShopifySettings, store: CredentialStore):
        self.settings = settings
        self.store = store

    async def handle_uninstall(
        self, body: bytes, hmac_header: str | None, shop_header: str | None
    ) -> str:
        """
        Verify an ``app/uninstalled`` notification and delete the shop's record.

        Returns:
            The shop whose credentials were removed.

        Raises:
            InvalidWebhookSignature: If the body signature does not verify.
            MissingParameters: If the shop header is missing.
            StorageUnavailable: If the store cannot be reached.
        """
        if not verify_webhook_hmac(body, hmac_header, self.settings.api_secret):
            raise InvalidWebhookSignature("uninstall webhook HMAC verification failed", shop=shop_header)

        shop = (shop_header or "").strip().lower()
        if not shop:
            raise MissingParameters("uninstall webhook without shop domain header")

        await run_in_threadpool(self.store.delete, shop)
        logger.info("App uninstalled by shop: %s", shop)
        return shop
