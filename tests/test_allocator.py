from __future__ import annotations

import asyncio

import pytest

from conftest import WALLET, FakeChainClient
from tempo_concurrent.allocator import NonceKeyAllocator, validate_nonce_key
from tempo_concurrent.errors import ValidationError
from tempo_concurrent.models import NonceKeyInfo


@pytest.mark.parametrize("key", [0, 1, 127, 255])
def test_validate_nonce_key_accepts_range(key: int) -> None:
    assert validate_nonce_key(key) == key


@pytest.mark.parametrize("key", [-1, 256, 1000, True, 1.5, "3"])
def test_validate_nonce_key_rejects_out_of_range(key: object) -> None:
    with pytest.raises(ValidationError, match="Nonce key must be between 0 and 255"):
        validate_nonce_key(key)


def test_resolve_nonce_rejects_bad_slot_without_network_call() -> None:
    client = FakeChainClient()
    allocator = NonceKeyAllocator(client)

    with pytest.raises(ValidationError):
        asyncio.run(allocator.resolve_nonce(WALLET, 256))

    assert client.calls == []


def test_resolve_nonce_makes_one_round_trip_per_call() -> None:
    client = FakeChainClient(counters={7: 3})
    allocator = NonceKeyAllocator(client)

    assert asyncio.run(allocator.resolve_nonce(WALLET, 7)) == 3
    assert client.calls_named("resolve") == [("resolve", WALLET, 7)]


def test_repeated_reads_are_side_effect_free() -> None:
    client = FakeChainClient(counters={4: 9})
    allocator = NonceKeyAllocator(client)

    async def read_twice() -> tuple[int, int]:
        return await allocator.resolve_nonce(WALLET, 4), await allocator.resolve_nonce(WALLET, 4)

    assert asyncio.run(read_twice()) == (9, 9)
    assert len(client.calls_named("resolve")) == 2


def test_list_active_slots_scans_every_key_and_keeps_nonzero() -> None:
    client = FakeChainClient(counters={0: 12, 3: 1, 200: 5, 255: 2})
    allocator = NonceKeyAllocator(client, scan_width=32)

    active = asyncio.run(allocator.list_active_slots(WALLET))

    assert active == [
        NonceKeyInfo(key=0, nonce=12),
        NonceKeyInfo(key=3, nonce=1),
        NonceKeyInfo(key=200, nonce=5),
        NonceKeyInfo(key=255, nonce=2),
    ]
    assert sorted(call[2] for call in client.calls_named("resolve")) == list(range(256))


def test_list_active_slots_empty_when_unused() -> None:
    allocator = NonceKeyAllocator(FakeChainClient())
    assert asyncio.run(allocator.list_active_slots(WALLET)) == []


def test_scan_width_must_be_positive() -> None:
    with pytest.raises(ValueError):
        NonceKeyAllocator(FakeChainClient(), scan_width=0)
