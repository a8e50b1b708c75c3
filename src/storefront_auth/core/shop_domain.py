"""Shop domain validation."""

import re

from storefront_auth.core.errors import InvalidShopDomain

_SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")


def normalize_shop_domain(shop: str | None) -> str:
    """
    Return ``shop`` lower-cased and stripped if it is a ``*.myshopify.com`` domain.

    Raises:
        InvalidShopDomain: If it is not.
    """
    normalized = (shop or "").strip().lower()
    if not _SHOP_DOMAIN_RE.fullmatch(normalized):
        raise InvalidShopDomain(f"rejected shop domain {shop!r}")
    return normalized
