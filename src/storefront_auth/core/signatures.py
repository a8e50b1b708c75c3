"""
Shopify request signature verification.

Shopify signs requests in two unrelated ways that only share the keyed hash:

- Redirects to the app (install entry, OAuth callback) carry an ``hmac`` query
  parameter: hex HMAC-SHA256 over every other parameter, sorted by name and
  joined as ``key=value`` pairs with ``&``.
- Webhooks carry an ``X-Shopify-Hmac-Sha256`` header: base64 HMAC-SHA256 over
  the raw request body.

Each scheme has its own function so a caller cannot pick the wrong
canonicalization. Verification never raises; anything malformed is simply not
authentic.
"""

import base64
import hashlib
import hmac
import logging
from typing import Iterable, Mapping

logger = logging.getLogger("signatures")

QUERY_SIGNATURE_PARAM = "hmac"


def _keyed_digest(secret: str, message: bytes) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def _query_items(params: Mapping[str, str] | Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    if isinstance(params, Mapping):
        return [(str(key), str(value)) for key, value in params.items()]
    return [(str(key), str(value)) for key, value in params]


def _canonical_query(items: list[tuple[str, str]]) -> str:
    filtered = [(key, value) for key, value in items if key != QUERY_SIGNATURE_PARAM]
    filtered.sort(key=lambda item: item[0])
    return "&".join(f"{key}={value}" for key, value in filtered)


def compute_query_hmac(
    params: Mapping[str, str] | Iterable[tuple[str, str]], secret: str
) -> str:
    """Hex signature Shopify attaches to a redirect carrying ``params``."""
    message = _canonical_query(_query_items(params))
    return _keyed_digest(secret, message.encode("utf-8")).hex()


def verify_query_hmac(
    params: Mapping[str, str] | Iterable[tuple[str, str]], secret: str
) -> bool:
    """
    Verify the ``hmac`` query parameter of a redirect from Shopify.

    Args:
        params: All query parameters, including ``hmac``.
        secret: The app's API secret.

    Returns:
        True if the signature matches.
    """
    if not secret:
        logger.error("SHOPIFY_API_SECRET not configured")
        return False

    try:
        items = _query_items(params)
        supplied = next(
            (value for key, value in items if key == QUERY_SIGNATURE_PARAM), None
        )
        if not supplied:
            return False
        computed = compute_query_hmac(items, secret)
        return hmac.compare_digest(computed.encode("ascii"), supplied.encode("utf-8"))
    except (TypeError, ValueError, UnicodeError):
        return False


def compute_webhook_hmac(body: bytes, secret: str) -> str:
    """Base64 signature Shopify sends with a webhook carrying ``body``."""
    return base64.b64encode(_keyed_digest(secret, body)).decode("ascii")


def verify_webhook_hmac(body: bytes, supplied_hmac: str | None, secret: str) -> bool:
    """
    Verify the ``X-Shopify-Hmac-Sha256`` header of a webhook.

    Args:
        body: Raw request body, exactly as received.
        supplied_hmac: Header value.
        secret: The app's API secret.

    Returns:
        True if the signature matches.
    """
    if not secret:
        logger.error("SHOPIFY_API_SECRET not configured")
        return False
    if not supplied_hmac or not isinstance(body, (bytes, bytearray)):
        return False

    try:
        computed = compute_webhook_hmac(bytes(body), secret)
        return hmac.compare_digest(computed.encode("ascii"), supplied_hmac.encode("utf-8"))
    except (TypeError, ValueError, UnicodeError):
        return False
