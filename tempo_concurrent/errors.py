"""Structured error types shared by the engine, the RPC client and the tools.

Codes are grouped by range so callers can branch on them without parsing
messages:

* 1000-1999: validation errors
* 3000-3999: blockchain errors
* 4000-4999: network errors
* 5000-5999: internal errors
"""

from __future__ import annotations

from typing import Any, Dict, Optional

VALIDATION_INVALID_ADDRESS = 1001
VALIDATION_INVALID_AMOUNT = 1002
VALIDATION_INVALID_TOKEN = 1003
VALIDATION_INVALID_MEMO = 1004
VALIDATION_MISSING_FIELD = 1006
VALIDATION_INVALID_FORMAT = 1007

BLOCKCHAIN_INSUFFICIENT_BALANCE = 3001
BLOCKCHAIN_TRANSACTION_REVERTED = 3003
BLOCKCHAIN_NONCE_TOO_LOW = 3004
BLOCKCHAIN_TRANSACTION_TIMEOUT = 3005

NETWORK_CONNECTION_FAILED = 4001
NETWORK_REQUEST_FAILED = 4002

INTERNAL_UNEXPECTED = 5001
INTERNAL_WALLET_NOT_CONFIGURED = 5002
INTERNAL_CONFIGURATION = 5003


class TempoError(RuntimeError):
    """Base class for every error surfaced to tool callers."""

    def __init__(
        self,
        code: int,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
        }
        if self.details:
            payload["details"] = dict(self.details)
        if self.retry_after is not None:
            payload["retryAfter"] = self.retry_after
        return payload


class ValidationError(TempoError):
    """Raised when caller input is rejected before any network activity."""

    def __init__(self, code: int, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(code, message, details=details, recoverable=True)

    @classmethod
    def missing_field(cls, field: str) -> "ValidationError":
        return cls(
            VALIDATION_MISSING_FIELD,
            f"Missing required field: {field}",
            {"field": field, "suggestion": f'Provide a value for the "{field}" parameter'},
        )

    @classmethod
    def custom(cls, field: str, message: str, received: str | None = None) -> "ValidationError":
        details: Dict[str, Any] = {"field": field}
        if received is not None:
            details["received"] = received
        return cls(VALIDATION_INVALID_FORMAT, message, details)

    @classmethod
    def invalid_address(cls, address: str, field: str = "address") -> "ValidationError":
        return cls(
            VALIDATION_INVALID_ADDRESS,
            "Invalid Ethereum address format",
            {
                "field": field,
                "received": address,
                "expected": "0x-prefixed 40-character hex string",
            },
        )

    @classmethod
    def invalid_amount(cls, amount: str) -> "ValidationError":
        return cls(
            VALIDATION_INVALID_AMOUNT,
            "Amount must be a positive number",
            {
                "field": "amount",
                "received": amount,
                "expected": 'Positive decimal number (e.g., "100.50")',
            },
        )

    @classmethod
    def invalid_token(cls, token: str) -> "ValidationError":
        return cls(
            VALIDATION_INVALID_TOKEN,
            "Token not found or invalid",
            {
                "field": "token",
                "received": token,
                "suggestion": "Use a token address (0x...) or a configured alias",
            },
        )

    @classmethod
    def invalid_memo(cls, memo: str, byte_length: int) -> "ValidationError":
        preview = memo if len(memo) <= 50 else memo[:50] + "..."
        return cls(
            VALIDATION_INVALID_MEMO,
            "Memo exceeds 32 bytes",
            {
                "field": "memo",
                "received": f'"{preview}" ({byte_length} bytes)',
                "expected": "Max 32 bytes",
            },
        )


class BlockchainError(TempoError):
    """Raised when the chain rejects, reverts or never includes a transaction."""

    def __init__(self, code: int, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(code, message, details=details, recoverable=False)

    @classmethod
    def transaction_reverted(cls, tx_hash: str, reason: str | None = None) -> "BlockchainError":
        return cls(
            BLOCKCHAIN_TRANSACTION_REVERTED,
            f"Transaction reverted: {reason or 'unknown reason'}",
            {"field": "transactionHash", "received": tx_hash},
        )

    @classmethod
    def transaction_timeout(cls, tx_hash: str, timeout: float) -> "BlockchainError":
        return cls(
            BLOCKCHAIN_TRANSACTION_TIMEOUT,
            f"Transaction confirmation timeout after {timeout:g} seconds",
            {
                "field": "transactionHash",
                "received": tx_hash,
                "suggestion": "Transaction may still be pending. Check block explorer for status.",
            },
        )

    @classmethod
    def nonce_too_low(cls, message: str) -> "BlockchainError":
        return cls(BLOCKCHAIN_NONCE_TOO_LOW, f"Nonce already used: {message}")

    @classmethod
    def insufficient_balance(cls, message: str) -> "BlockchainError":
        return cls(BLOCKCHAIN_INSUFFICIENT_BALANCE, f"Insufficient balance: {message}")


class NetworkError(TempoError):
    """Raised when the RPC endpoint cannot be reached or answers garbage."""

    def __init__(self, code: int, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(code, message, details=details, recoverable=True, retry_after=5)

    @classmethod
    def connection_failed(cls, url: str, reason: str | None = None) -> "NetworkError":
        details: Dict[str, Any] = {
            "received": url,
            "suggestion": "Check network connection and TEMPO_RPC_URL",
        }
        if reason:
            details["reason"] = reason
        return cls(NETWORK_CONNECTION_FAILED, "Failed to connect to RPC endpoint", details)

    @classmethod
    def request_failed(cls, method: str, reason: str) -> "NetworkError":
        return cls(NETWORK_REQUEST_FAILED, f"RPC request {method} failed: {reason}", {"method": method})


class InternalError(TempoError):
    """Raised for misconfiguration and unexpected failures."""

    def __init__(self, code: int, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(code, message, details=details, recoverable=False)

    @classmethod
    def configuration_error(cls, message: str) -> "InternalError":
        return cls(INTERNAL_CONFIGURATION, message)

    @classmethod
    def wallet_not_configured(cls) -> "InternalError":
        return cls(
            INTERNAL_WALLET_NOT_CONFIGURED,
            "Wallet address is not configured",
            {"suggestion": "Set TEMPO_WALLET_ADDRESS or wallet.address in the config file"},
        )

    @classmethod
    def unexpected(cls, exc: BaseException) -> "InternalError":
        return cls(INTERNAL_UNEXPECTED, str(exc) or exc.__class__.__name__)


def normalize_error(exc: BaseException) -> TempoError:
    """Map *exc* onto the error taxonomy used in tool responses."""

    if isinstance(exc, TempoError):
        return exc

    # Local import: rpc_client depends on this module.
    from .config import ConfigurationError
    from .rpc_client import RPCError, RPCTransportError, classify_rpc_error

    if isinstance(exc, RPCError):
        return classify_rpc_error(exc)
    if isinstance(exc, RPCTransportError):
        return NetworkError(NETWORK_REQUEST_FAILED, str(exc))
    if isinstance(exc, ConfigurationError):
        return InternalError.configuration_error(str(exc))
    return InternalError.unexpected(exc)
