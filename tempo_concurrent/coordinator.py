"""Batch orchestration across chunks of concurrent nonce-key submissions."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from .allocator import NonceKeyAllocator, validate_nonce_key
from .chain import ChainClient, TempoChainClient
from .chunking import ChunkPlanner
from .config import TempoConfig
from .confirmation import ConfirmationWaiter
from .errors import ValidationError
from .models import (
    DEFAULT_START_NONCE_KEY,
    MAX_NONCE_KEY,
    NONCE_KEY_COUNT,
    BatchResult,
    NonceKeyInfo,
    Operation,
    SubmissionOutcome,
)
from .submitter import ParallelSubmitter

logger = logging.getLogger(__name__)


def validate_batch(operations: Sequence[Operation], start_key: int) -> None:
    """Pre-flight checks. The first failing check wins."""

    if not operations:
        raise ValidationError.missing_field("payments")
    if isinstance(start_key, bool) or not isinstance(start_key, int) or not 0 <= start_key <= MAX_NONCE_KEY:
        raise ValidationError.custom(
            "startNonceKey",
            f"Start nonce key must be between 0 and {MAX_NONCE_KEY}",
            str(start_key),
        )
    available = NONCE_KEY_COUNT - start_key
    if len(operations) > available:
        raise ValidationError.custom(
            "payments",
            f"Cannot send {len(operations)} payments starting at key {start_key}. "
            f"Max {available} payments available with this start key.",
            f"{len(operations)} payments, startKey={start_key}",
        )


class BatchCoordinator:
    """Drive validate → plan → (allocate → submit → confirm) per chunk → aggregate.

    Chunks run strictly one after another with ``planner.inter_chunk_delay``
    seconds between them; operations inside a chunk run concurrently. Only
    pre-flight errors propagate; every per-operation failure is captured in
    the returned :class:`BatchResult`.
    """

    def __init__(
        self,
        client: ChainClient,
        *,
        planner: ChunkPlanner | None = None,
        allocator: NonceKeyAllocator | None = None,
        submitter: ParallelSubmitter | None = None,
        waiter: ConfirmationWaiter | None = None,
    ) -> None:
        self.client = client
        self.planner = planner or ChunkPlanner()
        self.allocator = allocator or NonceKeyAllocator(client)
        self.submitter = submitter or ParallelSubmitter(client, self.allocator)
        self.waiter = waiter or ConfirmationWaiter(client)

    @classmethod
    def from_config(cls, config: TempoConfig) -> "BatchCoordinator":
        planner = ChunkPlanner(
            config.advanced.concurrent_chunk_size,
            config.advanced.concurrent_chunk_delay,
        )
        return cls(TempoChainClient.from_config(config), planner=planner)

    async def submit_batch(
        self,
        operations: Sequence[Operation],
        start_key: int = DEFAULT_START_NONCE_KEY,
        wait_for_confirmation: bool = True,
    ) -> BatchResult:
        started = time.monotonic()
        logger.debug("validating batch of %d operations at key %s", len(operations), start_key)
        validate_batch(operations, start_key)
        address = await self.client.get_address()

        logger.debug("planning chunks of %d", self.planner.chunk_size)
        chunks = self.planner.plan(len(operations), start_key)
        logger.info(
            "Submitting %d operations on nonce keys %d-%d in %d chunk(s)",
            len(operations),
            start_key,
            start_key + len(operations) - 1,
            len(chunks),
        )

        outcomes: list[SubmissionOutcome] = []
        for chunk in chunks:
            logger.debug(
                "chunk %d/%d: keys %d-%d", chunk.index + 1, len(chunks), chunk.slots.start, chunk.slots.stop - 1
            )
            submitted = await self.submitter.submit_chunk(
                address, self.planner.split(operations, chunk), chunk.start_key
            )
            outcomes.extend(await self.waiter.confirm(submitted, wait_for_confirmation))
            if chunk.stop < len(operations) and self.planner.inter_chunk_delay > 0:
                await asyncio.sleep(self.planner.inter_chunk_delay)

        logger.debug("aggregating %d outcomes", len(outcomes))
        result = BatchResult.from_outcomes(
            outcomes,
            duration_ms=int((time.monotonic() - started) * 1000),
            chunks_processed=len(chunks),
        )
        logger.info(
            "Batch finished: %d confirmed, %d failed, %d pending in %d ms",
            result.confirmed_payments,
            result.failed_payments,
            result.pending_payments,
            result.duration_ms,
        )
        return result

    async def get_nonce_for_key(self, nonce_key: int, address: str | None = None) -> int:
        validate_nonce_key(nonce_key)
        target = address or await self.client.get_address()
        return await self.allocator.resolve_nonce(target, nonce_key)

    async def list_active_nonce_keys(self, address: str | None = None) -> list[NonceKeyInfo]:
        target = address or await self.client.get_address()
        return await self.allocator.list_active_slots(target)
