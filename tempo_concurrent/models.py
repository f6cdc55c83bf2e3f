"""Data model for concurrent batch submission."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Tuple

NONCE_KEY_COUNT = 256
MAX_NONCE_KEY = NONCE_KEY_COUNT - 1
PROTOCOL_NONCE_KEY = 0
DEFAULT_START_NONCE_KEY = 1


class OutcomeStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class Operation:
    """A single transfer requested by the caller.

    ``amount`` is in token base units; ``memo`` is an optional ``0x``-prefixed
    32-byte value.
    """

    token: str
    to: str
    amount: int
    memo: str | None = None
    token_symbol: str | None = None


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result for one operation. Terminal outcomes are replaced, never edited."""

    nonce_key: int
    tx_hash: str | None
    status: OutcomeStatus
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not OutcomeStatus.PENDING

    def confirmed(self) -> "SubmissionOutcome":
        if self.is_terminal:
            raise ValueError(f"outcome for nonce key {self.nonce_key} is already {self.status.value}")
        return replace(self, status=OutcomeStatus.CONFIRMED)

    def failed(self, error: str) -> "SubmissionOutcome":
        if self.is_terminal:
            raise ValueError(f"outcome for nonce key {self.nonce_key} is already {self.status.value}")
        return replace(self, status=OutcomeStatus.FAILED, error=error)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "nonceKey": self.nonce_key,
            "hash": self.tx_hash,
            "status": self.status.value,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class BatchResult:
    success: bool
    total_payments: int
    confirmed_payments: int
    failed_payments: int
    pending_payments: int
    results: Tuple[SubmissionOutcome, ...]
    duration_ms: int
    chunks_processed: int

    @classmethod
    def from_outcomes(
        cls,
        outcomes: Iterable[SubmissionOutcome],
        *,
        duration_ms: int,
        chunks_processed: int,
    ) -> "BatchResult":
        results = tuple(outcomes)
        confirmed = sum(1 for r in results if r.status is OutcomeStatus.CONFIRMED)
        failed = sum(1 for r in results if r.status is OutcomeStatus.FAILED)
        pending = sum(1 for r in results if r.status is OutcomeStatus.PENDING)
        return cls(
            success=failed == 0,
            total_payments=len(results),
            confirmed_payments=confirmed,
            failed_payments=failed,
            pending_payments=pending,
            results=results,
            duration_ms=duration_ms,
            chunks_processed=chunks_processed,
        )

    @property
    def nonce_keys(self) -> list[int]:
        return [r.nonce_key for r in self.results]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "totalPayments": self.total_payments,
            "confirmedPayments": self.confirmed_payments,
            "failedPayments": self.failed_payments,
            "pendingPayments": self.pending_payments,
            "results": [r.to_dict() for r in self.results],
            "durationMs": self.duration_ms,
            "chunksProcessed": self.chunks_processed,
        }


@dataclass(frozen=True)
class NonceKeyInfo:
    key: int
    nonce: int
