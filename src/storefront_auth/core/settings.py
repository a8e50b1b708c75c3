"""
Settings for the storefront auth application.
"""

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

SHOPIFY_API_VERSION = "2025-01"
DEFAULT_SCOPES = "read_products"

load_dotenv()


class ShopifySettings(BaseSettings):
    """
    Settings for the Shopify app.

    Values are read from ``SHOPIFY_``-prefixed environment variables or the
    ``.env`` file. An instance is passed to every component that needs it.
    """

    api_key: str = ""
    api_secret: str = ""
    scopes: str = DEFAULT_SCOPES
    host: str = "http://localhost:8000"
    api_version: str = SHOPIFY_API_VERSION
    database_url: str = "sqlite:///./shops.db"
    nonce_ttl_seconds: int = 600
    nonce_sweep_interval_seconds: int = 600
    exchange_timeout_seconds: float = 10.0
    post_install_url: str = ""
    register_uninstall_webhook: bool = True
    debug_routes: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SHOPIFY_",
        extra="ignore",
    )

    @property
    def callback_url(self) -> str:
        """Address Shopify redirects back to after authorization."""
        return f"{self.host.rstrip('/')}/auth/callback"

    @property
    def uninstall_webhook_url(self) -> str:
        """Address Shopify posts ``app/uninstalled`` notifications to."""
        return f"{self.host.rstrip('/')}/webhooks/app-uninstalled"

    def landing_url(self, shop: str) -> str:
        """
        Where the merchant lands once the app is installed.

        ``post_install_url`` may contain ``{shop}`` and ``{api_key}``; any other
        text, braces included, is kept as is.
        """
        if self.post_install_url:
            return self.post_install_url.replace("{shop}", shop).replace(
                "{api_key}", self.api_key
            )
        return f"https://{shop}/admin/apps/{self.api_key}"
