"""Agent-facing tool handlers for concurrent payments and nonce key queries.

Handlers take JSON-style ``arguments`` (camelCase keys, amounts as decimal
strings), call the :class:`~tempo_concurrent.coordinator.BatchCoordinator`
and return JSON-serialisable dicts. They never raise: failures become an
``{"success": false, "error": {...}}`` payload built by
:func:`~tempo_concurrent.errors.normalize_error`.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, Mapping

from .calldata import is_address, normalize_address, string_to_bytes32
from .config import TempoConfig
from .coordinator import BatchCoordinator
from .errors import ValidationError, normalize_error
from .models import DEFAULT_START_NONCE_KEY, NONCE_KEY_COUNT, Operation

logger = logging.getLogger(__name__)

MIN_CONCURRENT_PAYMENTS = 2

ToolHandler = Callable[[BatchCoordinator, TempoConfig, Mapping[str, Any]], Awaitable[Dict[str, Any]]]


def build_explorer_tx_url(explorer_url: str, tx_hash: str) -> str:
    return f"{explorer_url.rstrip('/')}/tx/{tx_hash}"


def resolve_token_address(token: str, config: TempoConfig) -> str:
    if is_address(token):
        return normalize_address(token, "token")
    alias = config.tokens.aliases.get(token)
    if alias is None:
        raise ValidationError.invalid_token(token)
    return normalize_address(alias, "token")


def parse_amount(raw: Any, decimals: int) -> int:
    """Scale a human-readable decimal amount to token base units."""

    text = str(raw).strip()
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise ValidationError.invalid_amount(text) from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError.invalid_amount(text)
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValidationError.custom(
            "amount", f"Amount has more than {decimals} decimal places", text
        )
    return int(scaled)


def format_units(amount: int, decimals: int) -> str:
    value = Decimal(amount).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _error_response(exc: BaseException) -> Dict[str, Any]:
    error = normalize_error(exc)
    return {"success": False, "error": error.to_dict()}


def build_operations(items: Any, config: TempoConfig) -> list[Operation]:
    if not isinstance(items, list) or not items:
        raise ValidationError.missing_field("payments")
    if len(items) < MIN_CONCURRENT_PAYMENTS:
        raise ValidationError.custom(
            "payments", "At least 2 payments required for concurrent execution", str(len(items))
        )
    if len(items) > NONCE_KEY_COUNT:
        raise ValidationError.custom(
            "payments",
            f"Maximum {NONCE_KEY_COUNT} payments per call (limited by nonce key range)",
            str(len(items)),
        )
    operations: list[Operation] = []
    for item in items:
        if not isinstance(item, Mapping):
            raise ValidationError.custom("payments", "Each payment must be an object", repr(item))
        for required in ("token", "to", "amount"):
            if item.get(required) in (None, ""):
                raise ValidationError.missing_field(required)
        memo = item.get("memo")
        operations.append(
            Operation(
                token=resolve_token_address(str(item["token"]), config),
                to=normalize_address(str(item["to"]), "to"),
                amount=parse_amount(item["amount"], config.tokens.decimals),
                memo=string_to_bytes32(str(memo)) if memo else None,
                token_symbol=str(item["token"]),
            )
        )
    return operations


async def send_concurrent_payments(
    coordinator: BatchCoordinator, config: TempoConfig, arguments: Mapping[str, Any]
) -> Dict[str, Any]:
    started = time.monotonic()
    items = arguments.get("payments")
    try:
        operations = build_operations(items, config)
        wait = arguments.get("waitForConfirmation", True)
        if not isinstance(wait, bool):
            raise ValidationError.custom(
                "waitForConfirmation", "waitForConfirmation must be a boolean", repr(wait)
            )
        result = await coordinator.submit_batch(
            operations, arguments.get("startNonceKey", DEFAULT_START_NONCE_KEY), wait
        )
    except Exception as exc:
        logger.error(
            "send_concurrent_payments failed after %d ms: %s",
            int((time.monotonic() - started) * 1000),
            exc,
        )
        return _error_response(exc)

    decimals = config.tokens.decimals
    transactions = []
    for operation, item, outcome in zip(operations, items, result.results):
        entry: Dict[str, Any] = {
            "nonceKey": outcome.nonce_key,
            "transactionHash": outcome.tx_hash,
            "to": operation.to,
            "amount": str(item["amount"]),
            "token": operation.token,
            "tokenSymbol": operation.token_symbol,
            "memo": item.get("memo") or None,
            "status": outcome.status.value,
        }
        if outcome.error is not None:
            entry["error"] = outcome.error
        if outcome.tx_hash:
            entry["explorerUrl"] = build_explorer_tx_url(config.network.explorer_url, outcome.tx_hash)
        transactions.append(entry)

    return {
        "success": result.success,
        "totalPayments": result.total_payments,
        "confirmedPayments": result.confirmed_payments,
        "failedPayments": result.failed_payments,
        "pendingPayments": result.pending_payments,
        "transactions": transactions,
        "totalAmount": format_units(sum(op.amount for op in operations), decimals),
        "totalDuration": f"{result.duration_ms}ms",
        "chunksProcessed": result.chunks_processed,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def get_nonce_for_key(
    coordinator: BatchCoordinator, config: TempoConfig, arguments: Mapping[str, Any]
) -> Dict[str, Any]:
    try:
        address = arguments.get("address")
        if address is not None:
            address = normalize_address(str(address))
        else:
            address = await coordinator.client.get_address()
        nonce_key = arguments.get("nonceKey")
        if nonce_key is None:
            raise ValidationError.missing_field("nonceKey")
        nonce = await coordinator.get_nonce_for_key(nonce_key, address)
    except Exception as exc:
        return _error_response(exc)
    return {"nonceKey": nonce_key, "nonce": str(nonce), "address": address}


async def list_active_nonce_keys(
    coordinator: BatchCoordinator, config: TempoConfig, arguments: Mapping[str, Any]
) -> Dict[str, Any]:
    try:
        address = arguments.get("address")
        if address is not None:
            address = normalize_address(str(address))
        else:
            address = await coordinator.client.get_address()
        active = await coordinator.list_active_nonce_keys(address)
    except Exception as exc:
        return _error_response(exc)
    return {
        "address": address,
        "activeKeys": [
            {
                "nonceKey": info.key,
                "currentNonce": str(info.nonce),
                "transactionsExecuted": str(info.nonce),
            }
            for info in active
        ],
        "totalActiveKeys": len(active),
    }


TOOLS: Dict[str, ToolHandler] = {
    "send_concurrent_payments": send_concurrent_payments,
    "get_nonce_for_key": get_nonce_for_key,
    "list_active_nonce_keys": list_active_nonce_keys,
}


async def call_tool(
    name: str,
    coordinator: BatchCoordinator,
    config: TempoConfig,
    arguments: Mapping[str, Any] | None = None,
) -> Dict[str, Any]:
    handler = TOOLS.get(name)
    if handler is None:
        return _error_response(ValidationError.custom("tool", f"Unknown tool: {name}", name))
    return await handler(coordinator, config, arguments or {})
