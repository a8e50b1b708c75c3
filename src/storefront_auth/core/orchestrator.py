"""OAuth install orchestration.

Drives one shop's install handshake:

    IDLE -> AUTH_REQUESTED -> AWAITING_CALLBACK -> TOKEN_EXCHANGED -> INSTALLED

with FAILED reachable from any state. Handshakes for different shops, and
overlapping handshakes for the same shop, run concurrently. Nothing here
serializes them; the nonce registry guarantees a state value is accepted once
and the store's upsert is atomic per shop.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Mapping

from starlette.concurrency import run_in_threadpool

from storefront_auth.core.errors import (
    AuthenticityFailure,
    CsrfViolation,
    InstallFlowError,
    MissingParameters,
    StorageUnavailable,
)
from storefront_auth.core.models import TokenGrant
from storefront_auth.core.nonces import NonceRegistry
from storefront_auth.core.settings import ShopifySettings
from storefront_auth.core.shop_domain import normalize_shop_domain
from storefront_auth.core.signatures import verify_query_hmac
from storefront_auth.core.store import CredentialStore
from storefront_auth.plugins.shopify_api import UNINSTALL_TOPIC, ShopifyAPIError, ShopifyClient

logger = logging.getLogger("orchestrator")


class InstallState(str, enum.Enum):
    IDLE = "idle"
    AUTH_REQUESTED = "auth_requested"
    AWAITING_CALLBACK = "awaiting_callback"
    TOKEN_EXCHANGED = "token_exchanged"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass
class InstallAttempt:
    """State of a single handshake, kept for the duration of one request."""

    shop: str | None = None
    state: InstallState = InstallState.IDLE
    grant: TokenGrant | None = field(default=None, repr=False)

    def advance(self, state: InstallState) -> None:
        logger.info(
            "Install %s: %s -> %s", self.shop or "<unknown>", self.state.value, state.value
        )
        self.state = state


@dataclass(frozen=True)
class InstallResult:
    shop: str
    scope: str
    redirect_url: str


class InstallOrchestrator:
    """Runs the install handshake against injected collaborators."""

    def __init__(
        self,
        settings: ShopifySettings,
        nonces: NonceRegistry,
        store: CredentialStore,
        shopify: ShopifyClient,
    ):
        self.settings = settings
        self.nonces = nonces
        self.store = store
        self.shopify = shopify

    def begin_install(self, shop: str | None) -> str:
        """
        Start an install for ``shop`` and return the Shopify authorize URL.

        Raises:
            InvalidShopDomain: If ``shop`` is not a ``*.myshopify.com`` domain.
        """
        attempt = InstallAttempt()
        try:
            attempt.shop = normalize_shop_domain(shop)
        except InstallFlowError:
            attempt.advance(InstallState.FAILED)
            raise

        nonce = self.nonces.issue()
        attempt.advance(InstallState.AUTH_REQUESTED)
        url = self.shopify.authorize_url(attempt.shop, nonce)
        # Control passes to Shopify until it redirects back to the callback.
        attempt.advance(InstallState.AWAITING_CALLBACK)
        return url

    async def complete_install(self, params: Mapping[str, str]) -> InstallResult:
        """
        Handle the OAuth callback carrying ``params``.

        Checks run in order and the first failure wins: required parameters,
        signature, then state. Only then is the code exchanged and the token
        stored.

        Raises:
            MissingParameters, AuthenticityFailure, CsrfViolation,
            InvalidShopDomain, ExchangeFailure, StorageUnavailable
        """
        # The shop is only recorded once it has been validated.
        attempt = InstallAttempt(state=InstallState.AWAITING_CALLBACK)
        try:
            grant = await self._exchange(attempt, params)
            attempt.grant = grant
            attempt.advance(InstallState.TOKEN_EXCHANGED)
            await self._persist(attempt)
        except InstallFlowError as e:
            if e.shop is None:
                e.shop = attempt.shop
            attempt.advance(InstallState.FAILED)
            raise
        attempt.advance(InstallState.INSTALLED)

        if self.settings.register_uninstall_webhook:
            await self._register_uninstall_webhook(attempt)

        return InstallResult(
            shop=attempt.shop,
            scope=grant.scope,
            redirect_url=self.settings.landing_url(attempt.shop),
        )

    async def _exchange(self, attempt: InstallAttempt, params: Mapping[str, str]) -> TokenGrant:
        shop = params.get("shop")
        code = params.get("code")
        if not shop or not code:
            raise MissingParameters("callback without shop or code")

        if not verify_query_hmac(params, self.settings.api_secret):
            raise AuthenticityFailure("callback HMAC verification failed")

        attempt.shop = normalize_shop_domain(shop)

        if not self.nonces.redeem(params.get("state")):
            raise CsrfViolation("state unknown, expired or already used")

        return await self.shopify.exchange_code(attempt.shop, code)

    async def _persist(self, attempt: InstallAttempt) -> None:
        # The grant stays on the attempt so a failed write can be repeated
        # without a second exchange; upsert is idempotent.
        grant = attempt.grant
        for tries_left in (1, 0):
            try:
                await run_in_threadpool(
                    self.store.upsert,
                    attempt.shop,
                    grant.access_token.get_secret_value(),
                    grant.scope,
                )
                return
            except StorageUnavailable:
                if not tries_left:
                    raise
                logger.warning("Storing credentials failed for shop %s, retrying once", attempt.shop)

    async def _register_uninstall_webhook(self, attempt: InstallAttempt) -> None:
        try:
            await self.shopify.register_webhook(
                attempt.shop,
                attempt.grant.access_token.get_secret_value(),
                UNINSTALL_TOPIC,
                self.settings.uninstall_webhook_url,
            )
        except ShopifyAPIError as e:
            logger.warning(
                "Uninstall webhook registration failed for shop %s: %s", attempt.shop, e
            )
