"""Chain client capability consumed by the batch engine.

:class:`ChainClient` is the only surface the engine depends on; tests supply
in-memory fakes. :class:`TempoChainClient` implements it over the blocking
:class:`~tempo_concurrent.rpc_client.TempoRPCClient`, pushing each round trip
onto a worker thread so concurrent fan-out stays on one event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Protocol, TypeVar

from .calldata import decode_uint256, encode_get_nonce
from .config import TempoConfig
from .errors import BlockchainError, InternalError, NetworkError
from .models import PROTOCOL_NONCE_KEY
from .rpc_client import RPCError, RPCTransportError, TempoRPCClient, classify_rpc_error

logger = logging.getLogger(__name__)

NONCE_PRECOMPILE_ADDRESS = "0x4e4f4e4345000000000000000000000000000000"

T = TypeVar("T")


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    block_number: int
    status: int
    gas_used: int = 0

    @classmethod
    def from_rpc(cls, payload: Dict[str, Any]) -> "Receipt":
        return cls(
            tx_hash=str(payload.get("transactionHash", "")),
            block_number=int(payload.get("blockNumber") or "0x0", 16),
            status=int(payload.get("status") or "0x0", 16),
            gas_used=int(payload.get("gasUsed") or "0x0", 16),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ChainClient(Protocol):
    async def get_address(self) -> str: ...

    async def resolve_slot_counter(self, address: str, slot: int) -> int: ...

    async def submit(self, to: str, payload: str, nonce: int, nonce_key: int) -> str: ...

    async def await_inclusion(self, tx_hash: str) -> Receipt: ...


class TempoChainClient:
    """JSON-RPC backed :class:`ChainClient` for a single Tempo account."""

    def __init__(
        self,
        rpc: TempoRPCClient,
        address: str | None,
        *,
        confirmations: int = 1,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        fee_token: str | None = None,
    ) -> None:
        self.rpc = rpc
        self._address = address
        self.confirmations = max(1, confirmations)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.fee_token = fee_token

    @classmethod
    def from_config(cls, config: TempoConfig) -> "TempoChainClient":
        return cls(
            TempoRPCClient.from_config(config),
            config.wallet_address,
            confirmations=config.advanced.confirmations,
            timeout=config.advanced.timeout,
            poll_interval=config.advanced.poll_interval,
            fee_token=config.tokens.fee_token,
        )

    async def _call(self, method: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking RPC helper in a worker thread, mapping its failures."""

        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except RPCError as exc:
            raise classify_rpc_error(exc) from exc
        except RPCTransportError as exc:
            raise NetworkError.request_failed(method, str(exc)) from exc

    async def get_address(self) -> str:
        if not self._address:
            raise InternalError.wallet_not_configured()
        return self._address

    async def resolve_slot_counter(self, address: str, slot: int) -> int:
        if slot == PROTOCOL_NONCE_KEY:
            return await self._call(
                "eth_getTransactionCount", self.rpc.eth_get_transaction_count, address, "pending"
            )
        data = encode_get_nonce(address, slot)
        result = await self._call("eth_call", self.rpc.eth_call, NONCE_PRECOMPILE_ADDRESS, data)
        return decode_uint256(result)

    async def submit(self, to: str, payload: str, nonce: int, nonce_key: int) -> str:
        sender = await self.get_address()
        tx_hash = await self._call(
            "eth_sendTransaction",
            self.rpc.eth_send_transaction,
            sender=sender,
            to=to,
            data=payload,
            nonce=nonce,
            nonce_key=nonce_key,
            fee_token=self.fee_token,
        )
        logger.debug("Submitted %s on nonce key %d (nonce %d)", tx_hash, nonce_key, nonce)
        return tx_hash

    async def await_inclusion(self, tx_hash: str) -> Receipt:
        """Poll for the receipt until it is ``confirmations`` blocks deep."""

        deadline = time.monotonic() + self.timeout
        while True:
            payload = await self._call(
                "eth_getTransactionReceipt", self.rpc.eth_get_transaction_receipt, tx_hash
            )
            if payload:
                receipt = Receipt.from_rpc(payload)
                if not receipt.succeeded:
                    raise BlockchainError.transaction_reverted(tx_hash, "status 0x0")
                if self.confirmations <= 1:
                    return receipt
                head = await self._call("eth_blockNumber", self.rpc.eth_block_number)
                if head - receipt.block_number + 1 >= self.confirmations:
                    return receipt
            if time.monotonic() >= deadline:
                raise BlockchainError.transaction_timeout(tx_hash, self.timeout)
            await asyncio.sleep(self.poll_interval)
