from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from tempo_concurrent.chain import Receipt
from tempo_concurrent.chunking import ChunkPlanner
from tempo_concurrent.coordinator import BatchCoordinator
from tempo_concurrent.errors import BlockchainError, NetworkError
from tempo_concurrent.models import Operation

WALLET = "0x1111111111111111111111111111111111111111"
TOKEN = "0x20C0000000000000000000000000000000000001"
RECIPIENT = "0x2222222222222222222222222222222222222222"


class FakeChainClient:
    """In-memory chain client that records every call it receives."""

    def __init__(
        self,
        address: str = WALLET,
        *,
        counters: dict[int, int] | None = None,
        fail_submit: Callable[[int, int], bool] | None = None,
        fail_confirm_keys: set[int] | None = None,
        fail_nonce_keys: set[int] | None = None,
        revert_keys: set[int] | None = None,
    ) -> None:
        self.address = address
        self.counters = dict(counters or {})
        self.fail_submit = fail_submit
        self.fail_confirm_keys = fail_confirm_keys or set()
        self.fail_nonce_keys = fail_nonce_keys or set()
        self.revert_keys = revert_keys or set()
        self.calls: list[tuple] = []
        self.submit_count = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._hash_keys: dict[str, int] = {}

    async def get_address(self) -> str:
        self.calls.append(("get_address",))
        return self.address

    async def resolve_slot_counter(self, address: str, slot: int) -> int:
        self.calls.append(("resolve", address, slot))
        await asyncio.sleep(0)
        if slot in self.fail_nonce_keys:
            raise NetworkError.request_failed("eth_call", "connection reset")
        return self.counters.get(slot, 0)

    async def submit(self, to: str, payload: str, nonce: int, nonce_key: int) -> str:
        self.submit_count += 1
        call_number = self.submit_count
        self.calls.append(("submit", to, payload, nonce, nonce_key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.fail_submit is not None and self.fail_submit(call_number, nonce_key):
                raise RuntimeError(f"insufficient funds for key {nonce_key}")
        finally:
            self.in_flight -= 1
        tx_hash = "0x" + format(nonce_key, "064x")
        self._hash_keys[tx_hash] = nonce_key
        self.counters[nonce_key] = nonce + 1
        return tx_hash

    async def await_inclusion(self, tx_hash: str) -> Receipt:
        self.calls.append(("await", tx_hash))
        await asyncio.sleep(0)
        key = self._hash_keys[tx_hash]
        if key in self.fail_confirm_keys:
            raise BlockchainError.transaction_timeout(tx_hash, 30)
        if key in self.revert_keys:
            raise BlockchainError.transaction_reverted(tx_hash, "status 0x0")
        return Receipt(tx_hash=tx_hash, block_number=10, status=1)

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


def make_operations(count: int, memo: str | None = None) -> list[Operation]:
    return [Operation(token=TOKEN, to=RECIPIENT, amount=1_000_000 + i, memo=memo) for i in range(count)]


@pytest.fixture()
def fake_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture()
def make_coordinator() -> Callable[..., BatchCoordinator]:
    """Build a fresh coordinator per call; nothing is shared between tests."""

    def factory(client: FakeChainClient, chunk_size: int = 50, delay: float = 0.0) -> BatchCoordinator:
        return BatchCoordinator(client, planner=ChunkPlanner(chunk_size, delay))

    return factory
