"""Concurrent build/submit fan-out for one chunk."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from .allocator import NonceKeyAllocator
from .calldata import encode_transfer
from .chain import ChainClient
from .errors import TempoError
from .models import Operation, OutcomeStatus, SubmissionOutcome

logger = logging.getLogger(__name__)


def describe_error(exc: BaseException) -> str:
    text = str(exc) or exc.__class__.__name__
    suggestion = exc.details.get("suggestion") if isinstance(exc, TempoError) else None
    return f"{text} ({suggestion})" if suggestion else text


class ParallelSubmitter:
    """Submit every operation of a chunk on its own nonce key, concurrently.

    Each operation owns one output slot; a failure while resolving its nonce,
    encoding it or submitting it becomes a ``failed`` outcome for that
    operation alone.
    """

    def __init__(self, client: ChainClient, allocator: NonceKeyAllocator) -> None:
        self.client = client
        self.allocator = allocator

    async def submit_chunk(
        self, address: str, operations: Sequence[Operation], start_key: int
    ) -> list[SubmissionOutcome]:
        keys = [start_key + index for index in range(len(operations))]

        # Counters may have moved since the previous chunk; always read fresh.
        nonces = await asyncio.gather(
            *(self.allocator.resolve_nonce(address, key) for key in keys),
            return_exceptions=True,
        )

        outcomes = await asyncio.gather(
            *(
                self._submit_one(operation, key, nonce)
                for operation, key, nonce in zip(operations, keys, nonces)
            )
        )
        failed = sum(1 for outcome in outcomes if outcome.status is OutcomeStatus.FAILED)
        logger.debug(
            "Chunk at key %d: %d submitted, %d failed", start_key, len(outcomes) - failed, failed
        )
        return list(outcomes)

    async def _submit_one(
        self, operation: Operation, nonce_key: int, nonce: int | BaseException
    ) -> SubmissionOutcome:
        if isinstance(nonce, BaseException):
            if not isinstance(nonce, Exception):
                raise nonce
            logger.warning("Nonce lookup failed for key %d: %s", nonce_key, nonce)
            return SubmissionOutcome(
                nonce_key, None, OutcomeStatus.FAILED, f"Nonce lookup failed: {describe_error(nonce)}"
            )
        try:
            payload = encode_transfer(operation.to, operation.amount, operation.memo)
            tx_hash = await self.client.submit(operation.token, payload, nonce, nonce_key)
        except Exception as exc:
            logger.warning("Submission on nonce key %d failed: %s", nonce_key, exc)
            return SubmissionOutcome(nonce_key, None, OutcomeStatus.FAILED, describe_error(exc))
        return SubmissionOutcome(nonce_key, tx_hash, OutcomeStatus.PENDING)
