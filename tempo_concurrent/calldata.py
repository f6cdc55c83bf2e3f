"""Calldata helpers for the handful of fixed call layouts the engine issues.

Only static ABI types appear here (address, uint256, bytes32), so every
argument is a single 32-byte word and no dynamic offsets are needed.
"""

from __future__ import annotations

import re

from eth_utils import keccak, to_checksum_address

from .errors import ValidationError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
UINT256_MAX = 2**256 - 1

TRANSFER_SIGNATURE = "transfer(address,uint256)"
TRANSFER_WITH_MEMO_SIGNATURE = "transferWithMemo(address,uint256,bytes32)"
GET_NONCE_SIGNATURE = "getNonce(address,uint256)"


def function_selector(signature: str) -> str:
    """Return the 4-byte selector for *signature* as ``0x``-hex."""

    return "0x" + keccak(text=signature)[:4].hex()


def is_address(value: object) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value))


def normalize_address(value: str, field: str = "address") -> str:
    """Validate *value* and return its EIP-55 checksummed form."""

    if not is_address(value):
        raise ValidationError.invalid_address(str(value), field)
    return to_checksum_address(value)


def _word_address(value: str) -> str:
    if not is_address(value):
        raise ValidationError.invalid_address(str(value))
    return value[2:].lower().rjust(64, "0")


def _word_uint(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT256_MAX:
        raise ValidationError.custom("amount", "Value must be an unsigned 256-bit integer", str(value))
    return format(value, "064x")


def _word_bytes32(value: str) -> str:
    raw = value[2:] if value.startswith("0x") else value
    if len(raw) != 64:
        raise ValidationError.invalid_memo(value, len(raw) // 2)
    try:
        bytes.fromhex(raw)
    except ValueError as exc:
        raise ValidationError.custom("memo", "Memo must be hex encoded", value) from exc
    return raw.lower()


def encode_transfer(to: str, amount: int, memo: str | None = None) -> str:
    """Encode a TIP-20 ``transfer`` or ``transferWithMemo`` call."""

    if memo is None:
        return function_selector(TRANSFER_SIGNATURE) + _word_address(to) + _word_uint(amount)
    return (
        function_selector(TRANSFER_WITH_MEMO_SIGNATURE)
        + _word_address(to)
        + _word_uint(amount)
        + _word_bytes32(memo)
    )


def encode_get_nonce(account: str, nonce_key: int) -> str:
    """Encode the nonce precompile query for ``(account, nonce_key)``."""

    return function_selector(GET_NONCE_SIGNATURE) + _word_address(account) + _word_uint(nonce_key)


def decode_uint256(data: str | None) -> int:
    """Decode the first word of an ``eth_call`` result. Empty results are zero."""

    if not data or data == "0x":
        return 0
    raw = data[2:] if data.startswith("0x") else data
    return int(raw[:64], 16)


def string_to_bytes32(text: str) -> str:
    """Right-pad the UTF-8 encoding of *text* to 32 bytes."""

    encoded = text.encode("utf-8")
    if len(encoded) > 32:
        raise ValidationError.invalid_memo(text, len(encoded))
    return "0x" + encoded.ljust(32, b"\x00").hex()


def bytes32_to_string(value: str) -> str:
    """Inverse of :func:`string_to_bytes32`; trailing NUL bytes are dropped."""

    raw = value[2:] if value.startswith("0x") else value
    if len(raw) != 64:
        raise ValidationError.custom("memo", "Expected a 32-byte hex value", value)
    return bytes.fromhex(raw).rstrip(b"\x00").decode("utf-8")
