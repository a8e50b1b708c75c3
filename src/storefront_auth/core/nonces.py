"""Single-use nonces for the OAuth ``state`` parameter.

Each install initiation issues a nonce that Shopify echoes back on the
callback. A nonce can be redeemed once, and only within its TTL. The registry
is in-memory, which fits a single instance; a deployment with several
instances needs a shared implementation of the same ``issue``/``redeem``
interface.
"""

import asyncio
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger("nonces")

# 32 bytes of entropy, well above the 128-bit floor.
NONCE_BYTES = 32


@dataclass(frozen=True)
class NonceEntry:
    value: str
    issued_at: float


class NonceRegistry:
    """
    Registry of outstanding nonces.

    The lock only guards dictionary operations, so issuing and redeeming
    different nonces never wait on each other for longer than a dict update,
    and redeeming the same nonce from two callers yields exactly one success.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, NonceEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def issue(self) -> str:
        """Generate, record and return a fresh nonce."""
        value = secrets.token_urlsafe(NONCE_BYTES)
        entry = NonceEntry(value=value, issued_at=self._clock())
        with self._lock:
            self._entries[value] = entry
        return value

    def redeem(self, nonce: str | None) -> bool:
        """
        Consume ``nonce``.

        Returns True only if the nonce was issued, has not been redeemed and is
        younger than the TTL. The entry is removed either way.
        """
        if not nonce:
            return False
        with self._lock:
            entry = self._entries.pop(nonce, None)
        if entry is None:
            return False
        return not self._is_expired(entry, self._clock())

    def sweep(self) -> int:
        """Purge expired nonces and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Swept %d expired nonces", len(expired))
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Call ``sweep`` every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def _is_expired(self, entry: NonceEntry, now: float) -> bool:
        return now - entry.issued_at > self.ttl_seconds
