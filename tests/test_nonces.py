"""Tests for the OAuth state nonce registry."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from storefront_auth.core.nonces import NonceRegistry


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock) -> NonceRegistry:
    return NonceRegistry(ttl_seconds=600, clock=clock)


def test_issue_returns_fresh_values(registry):
    issued = {registry.issue() for _ in range(500)}

    assert len(issued) == 500
    assert len(registry) == 500


def test_nonce_has_enough_entropy(registry):
    # token_urlsafe(32) encodes 256 random bits as 43 characters
    assert len(registry.issue()) >= 43


def test_redeem_once(registry):
    nonce = registry.issue()

    assert registry.redeem(nonce) is True
    assert registry.redeem(nonce) is False


def test_redeem_unknown(registry):
    assert registry.redeem("never-issued") is False
    assert registry.redeem("") is False
    assert registry.redeem(None) is False


def test_redeem_within_ttl(registry, clock):
    nonce = registry.issue()
    clock.advance(599)

    assert registry.redeem(nonce) is True


def test_redeem_after_ttl_fails_without_sweep(registry, clock):
    nonce = registry.issue()
    clock.advance(601)

    assert registry.redeem(nonce) is False
    # Expired entries are consumed by the failed redemption too
    assert len(registry) == 0


def test_redeem_does_not_affect_other_nonces(registry):
    first = registry.issue()
    second = registry.issue()

    assert registry.redeem(first) is True
    assert registry.redeem(second) is True


def test_concurrent_redemption_yields_one_success(registry):
    nonce = registry.issue()
    workers = 16
    barrier = threading.Barrier(workers)

    def redeem() -> bool:
        barrier.wait()
        return registry.redeem(nonce)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: redeem(), range(workers)))

    assert results.count(True) == 1
    assert results.count(False) == workers - 1


def test_concurrent_issue_and_redeem_of_different_nonces(registry):
    nonces = [registry.issue() for _ in range(50)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        redeemed = list(pool.map(registry.redeem, nonces))
        issued = list(pool.map(lambda _: registry.issue(), range(50)))

    assert all(redeemed)
    assert len(set(issued)) == 50
    assert len(registry) == 50


def test_sweep_removes_only_expired(registry, clock):
    old = registry.issue()
    clock.advance(400)
    young = registry.issue()
    clock.advance(300)

    assert registry.sweep() == 1
    assert registry.redeem(old) is False
    assert registry.redeem(young) is True


@pytest.mark.asyncio
async def test_background_sweeper_purges_expired(registry, clock):
    registry.issue()
    registry.issue()
    clock.advance(601)

    sweeper = asyncio.create_task(registry.run_sweeper(0.01))
    await asyncio.sleep(0.05)
    sweeper.cancel()
    with pytest.raises(asyncio.CancelledError):
        await sweeper

    assert len(registry) == 0
