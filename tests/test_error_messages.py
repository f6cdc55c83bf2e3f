import pytest

from tempo_concurrent.config import ConfigurationError
from tempo_concurrent.errors import (
    BlockchainError,
    InternalError,
    NetworkError,
    TempoError,
    ValidationError,
    normalize_error,
)
from tempo_concurrent.rpc_client import RPCError, RPCTransportError, classify_rpc_error, format_rpc_hint


def test_validation_error_payload_is_recoverable():
    error = ValidationError.invalid_address("0x123", "to")

    payload = error.to_dict()

    assert payload["code"] == 1001
    assert payload["message"] == "Invalid Ethereum address format"
    assert payload["recoverable"] is True
    assert payload["details"]["field"] == "to"
    assert "retryAfter" not in payload


def test_network_error_carries_retry_after():
    payload = NetworkError.connection_failed("https://rpc.example", "refused").to_dict()

    assert payload["code"] == 4001
    assert payload["retryAfter"] == 5
    assert payload["details"]["reason"] == "refused"


def test_memo_error_truncates_preview():
    error = ValidationError.invalid_memo("x" * 80, 80)

    assert error.details["received"].startswith('"' + "x" * 50 + '..."')
    assert error.details["received"].endswith("(80 bytes)")


def test_timeout_message_formats_seconds():
    assert BlockchainError.transaction_timeout("0xabc", 30.0).message == (
        "Transaction confirmation timeout after 30 seconds"
    )


@pytest.mark.parametrize(
    "message, expected_type, expected_code",
    [
        ("nonce too low: next nonce 4, tx nonce 3", BlockchainError, 3004),
        ("insufficient funds for gas * price + value", BlockchainError, 3001),
        ("execution reverted", BlockchainError, 3003),
        ("header not found", NetworkError, 4002),
    ],
)
def test_classify_rpc_error(message, expected_type, expected_code):
    error = classify_rpc_error(RPCError(-32000, message))

    assert isinstance(error, expected_type)
    assert error.code == expected_code
    assert error.details["rpcCode"] == -32000


def test_rpc_hint_for_nonce_collision():
    hint = format_rpc_hint({"message": "nonce too low"})

    assert hint is not None
    assert "fresh start key" in hint
    assert format_rpc_hint({"message": "something else"}) is None
    assert format_rpc_hint(None) is None


def test_normalize_error_maps_each_family():
    existing = ValidationError.missing_field("payments")

    assert normalize_error(existing) is existing
    assert normalize_error(RPCError(-32000, "nonce too low")).code == 3004
    assert isinstance(normalize_error(RPCTransportError("boom")), NetworkError)
    assert normalize_error(ConfigurationError("bad url")).code == 5003
    unexpected = normalize_error(KeyError("x"))
    assert isinstance(unexpected, InternalError)
    assert unexpected.code == 5001


def test_all_errors_share_base():
    for error in (
        ValidationError.invalid_amount("-1"),
        BlockchainError.nonce_too_low("x"),
        NetworkError.request_failed("eth_call", "x"),
        InternalError.wallet_not_configured(),
    ):
        assert isinstance(error, TempoError)
        assert str(error) == error.message
