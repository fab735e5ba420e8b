import base64
import json

import pytest
import requests

from near_txwizard.config import NetworkConfig
from near_txwizard.rpc_client import (
    NearRPCClient,
    QueryError,
    RPCError,
    RPCTransportError,
    call_view_method,
    format_rpc_hint,
)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text or json.dumps(payload)
        self.url = "https://rpc.testnet.example"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class RecordingSession:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.requests: list[dict] = []

    def post(self, url, data, headers, timeout):
        self.requests.append({"url": url, "body": json.loads(data), "headers": headers, "timeout": timeout})
        return self.response


def _client(response: FakeResponse, api_key: str | None = None) -> tuple[NearRPCClient, RecordingSession]:
    config = NetworkConfig(network_name="testnet", rpc_url="https://rpc.testnet.example", api_key=api_key)
    client = NearRPCClient(config)
    session = RecordingSession(response)
    client._session = session  # type: ignore[assignment]
    config.client = client
    return client, session


def test_call_function_query_encodes_args_and_decodes_result() -> None:
    payload = {"jsonrpc": "2.0", "id": "1", "result": {"result": list(b'"42"'), "logs": ["hi"], "block_height": 9}}
    client, session = _client(FakeResponse(payload=payload), api_key="secret")

    result = client.call_view_function("usdc.near", "ft_balance_of", b'{"account_id":"alice.near"}')

    sent = session.requests[0]
    assert sent["headers"]["x-api-key"] == "secret"
    assert sent["body"]["method"] == "query"
    params = sent["body"]["params"]
    assert params["request_type"] == "call_function"
    assert params["finality"] == "final"
    assert base64.b64decode(params["args_base64"]) == b'{"account_id":"alice.near"}'
    assert result.parse_result_from_json() == "42"
    assert result.logs == ["hi"]


def test_unauthorized_response_mentions_api_key() -> None:
    client, _ = _client(FakeResponse(status_code=401, text="unauthorized"))

    with pytest.raises(RPCTransportError) as excinfo:
        client.call("block", {"finality": "final"})

    assert excinfo.value.status_code == 401
    assert "NEAR_TXWIZARD_API_KEY" in str(excinfo.value)


def test_json_rpc_error_carries_cause_name() -> None:
    payload = {
        "jsonrpc": "2.0",
        "id": "1",
        "error": {"code": -32000, "message": "Server error", "cause": {"name": "UNKNOWN_ACCOUNT"}, "data": "x"},
    }
    client, _ = _client(FakeResponse(payload=payload))

    with pytest.raises(RPCError) as excinfo:
        client.view_access_key("ghost.near", "ed25519:11111111111111111111111111111111")

    assert excinfo.value.name == "UNKNOWN_ACCOUNT"
    assert "does not exist" in format_rpc_hint(excinfo.value)


def test_connection_failure_becomes_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client, session = _client(FakeResponse(payload={}))

    def refuse(*_args, **_kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(session, "post", refuse)

    with pytest.raises(RPCTransportError, match="connection"):
        client.broadcast_tx_commit("AAAA")


def test_view_method_failure_is_wrapped_in_query_error() -> None:
    payload = {"jsonrpc": "2.0", "id": "1", "result": {"error": "wasm execution failed"}}
    client, _ = _client(FakeResponse(payload=payload))

    with pytest.raises(QueryError) as excinfo:
        call_view_method(client.network_config, "usdc.near", "ft_metadata", {})

    assert "Failed to fetch query for view method: 'ft_metadata'" in str(excinfo.value)
    assert excinfo.value.network_name == "testnet"


@pytest.mark.parametrize(
    "error, fragment",
    [
        ({"cause": {"name": "UNKNOWN_ACCESS_KEY"}, "message": "Server error"}, "access key"),
        ({"message": "InvalidNonce { ak_nonce: 5, tx_nonce: 5 }"}, "nonce"),
        ({"message": "NotEnoughBalance"}, "cannot cover"),
    ],
)
def test_format_rpc_hint_known_shapes(error, fragment) -> None:
    assert fragment in format_rpc_hint(error)


def test_format_rpc_hint_unknown_shape() -> None:
    assert format_rpc_hint({"message": "something else"}) is None
    assert format_rpc_hint(None) is None
