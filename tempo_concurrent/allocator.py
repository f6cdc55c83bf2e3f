"""Nonce key resolution against the chain."""

from __future__ import annotations

import asyncio
import logging

from .chain import ChainClient
from .errors import ValidationError
from .models import MAX_NONCE_KEY, NONCE_KEY_COUNT, NonceKeyInfo

logger = logging.getLogger(__name__)

DEFAULT_SCAN_WIDTH = 32


def validate_nonce_key(key: object, field: str = "nonceKey") -> int:
    """Return *key* if it names one of the 256 nonce keys, else raise."""

    if isinstance(key, bool) or not isinstance(key, int) or not 0 <= key <= MAX_NONCE_KEY:
        raise ValidationError.custom(
            field, f"Nonce key must be between 0 and {MAX_NONCE_KEY}", str(key)
        )
    return key


class NonceKeyAllocator:
    """Reads per-key nonce counters fresh from the chain.

    Counters are never cached: each call costs one round trip, and calls for
    different keys may run concurrently because the counters are independent.
    """

    def __init__(self, client: ChainClient, scan_width: int = DEFAULT_SCAN_WIDTH) -> None:
        if scan_width < 1:
            raise ValueError("scan_width must be at least 1")
        self.client = client
        self.scan_width = scan_width

    async def resolve_nonce(self, address: str, slot: int) -> int:
        validate_nonce_key(slot)
        return await self.client.resolve_slot_counter(address, slot)

    async def list_active_slots(self, address: str) -> list[NonceKeyInfo]:
        """Return every key with a non-zero counter, scanning in bounded groups."""

        active: list[NonceKeyInfo] = []
        for start in range(0, NONCE_KEY_COUNT, self.scan_width):
            keys = range(start, min(start + self.scan_width, NONCE_KEY_COUNT))
            nonces = await asyncio.gather(*(self.resolve_nonce(address, key) for key in keys))
            active.extend(
                NonceKeyInfo(key=key, nonce=nonce) for key, nonce in zip(keys, nonces) if nonce > 0
            )
        logger.debug("Found %d active nonce keys for %s", len(active), address)
        return active
