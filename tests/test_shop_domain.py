"""Tests for shop domain validation."""

import pytest

from storefront_auth.core.errors import InvalidShopDomain
from storefront_auth.core.shop_domain import normalize_shop_domain


@pytest.mark.parametrize(
    "shop,expected",
    [
        ("acme.myshopify.com", "acme.myshopify.com"),
        ("  Acme-Store.MyShopify.com ", "acme-store.myshopify.com"),
        ("shop42.myshopify.com", "shop42.myshopify.com"),
    ],
)
def test_accepts_myshopify_domains(shop, expected):
    assert normalize_shop_domain(shop) == expected


@pytest.mark.parametrize(
    "shop",
    [
        None,
        "",
        "acme.example.com",
        "acme.myshopify.com.evil.com",
        "https://acme.myshopify.com",
        "acme.myshopify.com/admin",
        "-acme.myshopify.com",
        "ac_me.myshopify.com",
        "myshopify.com",
    ],
)
def test_rejects_other_hosts(shop):
    with pytest.raises(InvalidShopDomain):
        normalize_shop_domain(shop)
