"""Typed JSON-RPC client for Tempo nodes.

The client is a thin, blocking transport: each helper maps to one Ethereum
style RPC method and returns the decoded ``result``. Concurrency is layered on
top by :mod:`tempo_concurrent.chain`, which runs these calls in worker threads.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response
from requests.adapters import HTTPAdapter

from .config import TempoConfig
from .errors import BlockchainError, NetworkError, TempoError

logger = logging.getLogger(__name__)

# One connection per concurrent worker: a full chunk, or one active-key scan group.
MIN_POOL_SIZE = 32


class RPCError(RuntimeError):
    """Raised when the node responds with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a short remediation hint for well-known node rejections."""

    if error_obj is None:
        return None

    message = ""
    if isinstance(error_obj, RPCError):
        message = error_obj.message
    elif isinstance(error_obj, dict):
        message = str(error_obj.get("message", ""))
    lowered = message.lower()

    if "nonce too low" in lowered:
        return (
            "The nonce for this nonce key was already used. Another transaction on the same key "
            "landed first; retry the batch with a fresh start key."
        )
    if "insufficient funds" in lowered or "insufficient balance" in lowered:
        return "The account cannot cover the transfer or its fee. Fund the fee token balance and retry."
    if "underpriced" in lowered:
        return "The node rejected the fee as too low. Retry once the fee market settles."
    if "already known" in lowered:
        return "The node already has this transaction in its pool; wait for it instead of resending."
    return None


def classify_rpc_error(exc: RPCError) -> TempoError:
    """Translate a node rejection into the blockchain/network error taxonomy."""

    lowered = exc.message.lower()
    hint = format_rpc_hint(exc)
    if "nonce too low" in lowered:
        error: TempoError = BlockchainError.nonce_too_low(exc.message)
    elif "insufficient funds" in lowered or "insufficient balance" in lowered:
        error = BlockchainError.insufficient_balance(exc.message)
    elif "revert" in lowered:
        error = BlockchainError.transaction_reverted("", exc.message)
    else:
        error = NetworkError.request_failed("rpc", exc.message)
    error.details.setdefault("rpcCode", exc.code)
    if hint:
        error.details.setdefault("suggestion", hint)
    return error


def _hex(value: int) -> str:
    return hex(int(value))


class TempoRPCClient:
    """Blocking JSON-RPC client for a Tempo endpoint.

    A single :class:`requests.Session` is reused for every call so that
    concurrent worker threads share the connection pool.
    """

    def __init__(self, url: str, timeout: float = 30.0, pool_size: int = MIN_POOL_SIZE) -> None:
        self.url = url
        self.timeout = timeout
        self._session = requests.Session()
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_size)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    @classmethod
    def from_config(cls, config: TempoConfig) -> "TempoRPCClient":
        return cls(
            config.network.rpc_url,
            timeout=config.advanced.rpc_timeout,
            pool_size=max(MIN_POOL_SIZE, config.advanced.concurrent_chunk_size),
        )

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request and return its ``result``."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self.url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                f"RPC connection to {self.url} failed. Check TEMPO_RPC_URL and network access."
            ) from exc
        self._raise_for_status(response)
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned a non-object JSON payload")
        if result.get("error"):
            error = result["error"]
            raise RPCError(
                error.get("code", -1), error.get("message", "unknown"), error.get("data")
            )
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        # Some gateways wrap JSON-RPC errors in HTTP 4xx/5xx; surface the body.
        try:
            body = response.json()
        except ValueError:
            body = response.text
        logger.error("RPC HTTP error %s from %s: %s", response.status_code, self.url, body)
        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"), error.get("data"))
        if response.status_code == 429:
            raise RPCTransportError(
                "RPC endpoint is rate limiting requests (429); lower the concurrent chunk size "
                "or raise the chunk delay.",
                status_code=response.status_code,
            )
        raise RPCTransportError(
            f"RPC server returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    def close(self) -> None:
        self._session.close()

    # Convenience wrappers -------------------------------------------------

    def eth_block_number(self) -> int:
        return int(self.call("eth_blockNumber"), 16)

    def eth_get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(self.call("eth_getTransactionCount", [address, block]), 16)

    def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        return self.call("eth_call", [{"to": to, "data": data}, block])

    def eth_send_transaction(
        self,
        *,
        sender: str,
        to: str,
        data: str,
        nonce: int,
        nonce_key: int,
        value: int = 0,
        fee_token: str | None = None,
    ) -> str:
        """Submit a transaction for node-side signing on the given nonce key."""

        tx: Dict[str, Any] = {
            "from": sender,
            "to": to,
            "data": data,
            "value": _hex(value),
            "nonce": _hex(nonce),
            "nonceKey": _hex(nonce_key),
        }
        if fee_token is not None:
            tx["feeToken"] = fee_token
        return self.call("eth_sendTransaction", [tx])

    def eth_get_transaction_receipt(self, tx_hash: str) -> Dict[str, Any] | None:
        return self.call("eth_getTransactionReceipt", [tx_hash])
