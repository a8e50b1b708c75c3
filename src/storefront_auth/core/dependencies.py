"""
FastAPI dependencies for the storefront auth application.
"""

import logging
from functools import lru_cache

from fastapi import Request

from .settings import ShopifySettings
from .store import CredentialStore

# Setup logger
logger = logging.getLogger("dependencies")


@lru_cache()
def get_settings() -> ShopifySettings:
    """
    Get the settings for the application.
    """
    settings = ShopifySettings()  # Reads SHOPIFY_ vars from the environment and .env
    if not settings.api_key or not settings.api_secret:
        logger.warning("SHOPIFY_API_KEY or SHOPIFY_API_SECRET is not set")
    logger.info("get_settings returning ShopifySettings for host: %s", settings.host)
    return settings


def get_credential_store(request: Request) -> CredentialStore:
    """
    Injection method to get the credential store of the running app.
    """
    return request.app.state.credential_store
