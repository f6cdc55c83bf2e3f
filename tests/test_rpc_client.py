import json

import pytest
import requests

from tempo_concurrent.config import TempoConfig
from tempo_concurrent.rpc_client import MIN_POOL_SIZE, RPCError, RPCTransportError, TempoRPCClient


class StubResponse:
    def __init__(self, payload=None, status_code: int = 200, text: str | None = None) -> None:
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class StubSession:
    def __init__(self, responses) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []

    def post(self, url, data, headers, timeout):
        self.requests.append({"url": url, "body": json.loads(data), "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        pass


def make_client(*responses) -> tuple[TempoRPCClient, StubSession]:
    client = TempoRPCClient("https://rpc.example", timeout=5)
    session = StubSession(responses)
    client._session = session
    return client, session


def test_call_returns_result_and_sends_jsonrpc_envelope():
    client, session = make_client(StubResponse({"jsonrpc": "2.0", "id": "1", "result": "0x10"}))

    assert client.eth_block_number() == 16

    body = session.requests[0]["body"]
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "eth_blockNumber"
    assert body["params"] == []
    assert session.requests[0]["timeout"] == 5


def test_send_transaction_includes_nonce_key():
    client, session = make_client(StubResponse({"result": "0xhash"}))

    tx_hash = client.eth_send_transaction(
        sender="0x1111111111111111111111111111111111111111",
        to="0x20c0000000000000000000000000000000000001",
        data="0xa9059cbb",
        nonce=7,
        nonce_key=12,
        fee_token="0x20c0000000000000000000000000000000000001",
    )

    assert tx_hash == "0xhash"
    (tx,) = session.requests[0]["body"]["params"]
    assert tx["nonce"] == "0x7"
    assert tx["nonceKey"] == "0xc"
    assert tx["value"] == "0x0"
    assert tx["feeToken"] == "0x20c0000000000000000000000000000000000001"


def test_pending_transaction_count_and_eth_call_params():
    client, session = make_client(StubResponse({"result": "0x3"}), StubResponse({"result": "0x"}))

    assert client.eth_get_transaction_count("0xabc") == 3
    assert client.eth_call("0xdef", "0x1234") == "0x"

    assert session.requests[0]["body"]["params"] == ["0xabc", "pending"]
    assert session.requests[1]["body"]["params"] == [{"to": "0xdef", "data": "0x1234"}, "latest"]


def test_rpc_error_object_raises_rpc_error():
    client, _ = make_client(StubResponse({"error": {"code": -32000, "message": "nonce too low"}}))

    with pytest.raises(RPCError) as excinfo:
        client.call("eth_sendTransaction", [{}])

    assert excinfo.value.code == -32000
    assert excinfo.value.message == "nonce too low"


def test_http_error_with_json_body_surfaces_rpc_error():
    client, _ = make_client(
        StubResponse({"error": {"code": -32603, "message": "internal"}}, status_code=500)
    )

    with pytest.raises(RPCError):
        client.call("eth_chainId")


def test_rate_limit_is_transport_error():
    client, _ = make_client(StubResponse(None, status_code=429, text="slow down"))

    with pytest.raises(RPCTransportError) as excinfo:
        client.call("eth_chainId")

    assert excinfo.value.status_code == 429
    assert "chunk" in str(excinfo.value)


def test_connection_failure_is_transport_error():
    client, _ = make_client(requests.ConnectionError("refused"))

    with pytest.raises(RPCTransportError, match="RPC connection to https://rpc.example failed"):
        client.call("eth_chainId")


def test_malformed_json_is_transport_error():
    client, _ = make_client(StubResponse(None, text="<html>"))

    with pytest.raises(RPCTransportError, match="malformed JSON"):
        client.call("eth_chainId")


def test_non_object_payload_is_transport_error():
    client, _ = make_client(StubResponse(["not", "a", "dict"]))

    with pytest.raises(RPCTransportError, match="non-object"):
        client.call("eth_chainId")


def test_session_pool_fits_concurrent_workers():
    config = TempoConfig()
    config.advanced.concurrent_chunk_size = 64

    wide = TempoRPCClient.from_config(config)
    default = TempoRPCClient("https://rpc.example")

    assert wide._session.get_adapter("https://rpc.testnet.tempo.xyz")._pool_maxsize == 64
    assert default._session.get_adapter("https://rpc.example")._pool_maxsize == MIN_POOL_SIZE
    assert default._session.get_adapter("http://localhost:8545")._pool_maxsize == MIN_POOL_SIZE
