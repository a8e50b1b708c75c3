"""Tests for the install flow error bodies."""

import pytest

from storefront_auth.core.errors import (
    AuthenticityFailure,
    CsrfViolation,
    ExchangeFailure,
    InvalidShopDomain,
    InvalidWebhookSignature,
    MissingParameters,
    StorageUnavailable,
)


def test_verification_rejections_share_one_body():
    bodies = [
        error("specific detail", shop="acme.myshopify.com").to_dict()
        for error in (InvalidShopDomain, AuthenticityFailure, CsrfViolation, InvalidWebhookSignature)
    ]

    assert all(body == bodies[0] for body in bodies)
    assert bodies[0] == {
        "error": {"code": "REQUEST_REJECTED", "message": "Request could not be verified"}
    }


def test_specific_codes_are_kept_for_logging():
    codes = {InvalidShopDomain.code, AuthenticityFailure.code, CsrfViolation.code}

    assert codes == {"INVALID_SHOP_DOMAIN", "AUTHENTICITY_FAILURE", "CSRF_VIOLATION"}


@pytest.mark.parametrize(
    "error,code",
    [
        (MissingParameters, "MISSING_PARAMETERS"),
        (ExchangeFailure, "EXCHANGE_FAILURE"),
        (StorageUnavailable, "STORAGE_UNAVAILABLE"),
    ],
)
def test_other_errors_expose_their_own_code(error, code):
    assert error("detail").to_dict()["error"]["code"] == code


def test_detail_never_reaches_the_body():
    body = ExchangeFailure("Shopify said: code already used", shop="acme.myshopify.com").to_dict()

    assert "already used" not in str(body)
    assert "acme" not in str(body)
