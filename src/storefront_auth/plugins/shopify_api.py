"""
Shopify Admin API client for the install flow.

Covers the three outbound calls the app makes: building the authorize URL,
exchanging an authorization code for an offline access token, and subscribing
to the ``app/uninstalled`` webhook.
"""

import logging
from urllib.parse import urlencode

import httpx

from storefront_auth.core.errors import ExchangeFailure
from storefront_auth.core.models import TokenGrant
from storefront_auth.core.settings import ShopifySettings

logger = logging.getLogger("shopify")

UNINSTALL_TOPIC = "app/uninstalled"


class ShopifyAPIError(Exception):
    """Error from a Shopify Admin API call other than the token exchange."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ShopifyClient:
    """
    Client for the Shopify OAuth and Admin endpoints.

    The token exchange has its own timeout, separate from whatever timeout
    the HTTP server applies to the callback request.
    """

    def __init__(self, settings: ShopifySettings, http_client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = http_client or httpx.AsyncClient(
            timeout=settings.exchange_timeout_seconds
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def authorize_url(self, shop: str, state: str) -> str:
        """
        Build the URL that asks the merchant to approve the app.

        Args:
            shop: Validated shop domain.
            state: Nonce echoed back on the callback.
        """
        params = urlencode(
            {
                "client_id": self.settings.api_key,
                "scope": self.settings.scopes,
                "redirect_uri": self.settings.callback_url,
                "state": state,
            }
        )
        return f"https://{shop}/admin/oauth/authorize?{params}"

    async def exchange_code(self, shop: str, code: str) -> TokenGrant:
        """
        Exchange an authorization code for an offline access token.

        Called once per callback. Codes are single-use, so a failed exchange is
        never retried here.

        Raises:
            ExchangeFailure: On timeout, network error, a non-2xx reply or a
                reply without an access token.
        """
        url = f"https://{shop}/admin/oauth/access_token"
        payload = {
            "client_id": self.settings.api_key,
            "client_secret": self.settings.api_secret,
            "code": code,
        }

        try:
            response = await self._client.post(
                url,
                json=payload,
                timeout=self.settings.exchange_timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise ExchangeFailure("token exchange timed out", shop=shop) from e
        except httpx.HTTPStatusError as e:
            raise ExchangeFailure(
                f"token exchange rejected with status {e.response.status_code}", shop=shop
            ) from e
        except httpx.RequestError as e:
            raise ExchangeFailure(f"token exchange request failed: {type(e).__name__}", shop=shop) from e
        except ValueError as e:
            raise ExchangeFailure("token exchange returned invalid JSON", shop=shop) from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise ExchangeFailure("token exchange response had no access_token", shop=shop)

        scope = data.get("scope") or self.settings.scopes
        logger.info("Access token received for shop: %s", shop)
        return TokenGrant(access_token=access_token, scope=scope)

    async def register_webhook(self, shop: str, access_token: str, topic: str, address: str) -> None:
        """
        Subscribe ``address`` to ``topic`` for ``shop``.

        Registering an address that is already subscribed is treated as success.

        Raises:
            ShopifyAPIError: If Shopify rejects the subscription.
        """
        url = f"https://{shop}/admin/api/{self.settings.api_version}/webhooks.json"
        payload = {"webhook": {"topic": topic, "address": address, "format": "json"}}

        try:
            response = await self._client.post(
                url,
                json=payload,
                headers={"X-Shopify-Access-Token": access_token},
            )
        except httpx.RequestError as e:
            raise ShopifyAPIError(f"Request failed: {type(e).__name__}") from e

        if response.status_code == httpx.codes.UNPROCESSABLE_ENTITY and "taken" in response.text:
            logger.info("Webhook %s already registered for shop: %s", topic, shop)
            return
        if response.is_error:
            raise ShopifyAPIError(
                f"Shopify API error: {response.status_code}", status_code=response.status_code
            )

        logger.info("Webhook %s registered for shop: %s", topic, shop)
