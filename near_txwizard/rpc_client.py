"""Typed JSON-RPC client for NEAR protocol nodes.

The helpers in this module back every command family: read-only contract
views used while preparing a transaction, the access-key and block lookups
needed before signing, and the final broadcast. No protocol logic is
implemented here; the client simply forwards well-typed requests and surfaces
errors clearly.
"""

from __future__ import annotations

import base64
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response

logger = logging.getLogger(__name__)

FINALITY_FINAL = "final"


class RPCError(RuntimeError):
    """Raised when the node responds with a JSON-RPC error."""

    def __init__(self, code: int, message: str, name: str | None = None, data: Any = None) -> None:
        detail = f"{name}: {data}" if name and data else (name or message)
        super().__init__(f"RPC error {code}: {detail}")
        self.code = code
        self.message = message
        self.name = name
        self.data = data


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QueryError(RuntimeError):
    """Raised when a read-only contract query fails or returns malformed data."""

    def __init__(self, message: str, *, contract_id: str, method_name: str, network_name: str) -> None:
        super().__init__(message)
        self.contract_id = contract_id
        self.method_name = method_name
        self.network_name = network_name


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a human-friendly hint for common NEAR JSON-RPC errors."""

    if error_obj is None:
        return None

    if isinstance(error_obj, RPCError):
        name = error_obj.name or ""
        text = f"{error_obj.message} {error_obj.data or ''}"
    elif isinstance(error_obj, dict):
        cause = error_obj.get("cause") or {}
        name = str(cause.get("name") or error_obj.get("name") or "")
        text = f"{error_obj.get('message', '')} {error_obj.get('data', '')}"
    else:
        return None

    lowered = text.lower()
    if name == "UNKNOWN_ACCESS_KEY" or ("access key" in lowered and "does not exist" in lowered):
        return (
            "The signer has no such access key on this network. Make sure the private key belongs to "
            "the signer account, or add the key first with the add-key command."
        )
    if name == "UNKNOWN_ACCOUNT" or "does not exist while viewing" in lowered:
        return "The account does not exist on this network. Check the account id and the selected network."
    if "invalidnonce" in lowered.replace(" ", "") or "invalid nonce" in lowered:
        return "The access key nonce moved while signing. Re-run the command to fetch a fresh nonce."
    if "notenoughbalance" in lowered.replace(" ", "") or "lackbalanceforstate" in lowered.replace(" ", ""):
        return "The signer cannot cover the attached deposit plus fees. Fund the account or lower the deposit."
    if name == "TIMEOUT_ERROR" or "timeout" in lowered:
        return "The node timed out waiting for the transaction; it may still be included. Check the explorer before retrying."
    return None


@dataclass
class CallResult:
    """Raw result of a ``call_function`` query."""

    result: bytes
    logs: list[str] = field(default_factory=list)

    def parse_result_from_json(self) -> Any:
        try:
            return json.loads(self.result.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise ValueError(f"View result is not valid JSON: {self.result[:64]!r}") from exc


class NearRPCClient:
    """Typed JSON-RPC client for NEAR archival or regular RPC nodes.

    The client is intentionally thin: each helper maps directly to an RPC
    method exposed by the node and returns the parsed JSON response.
    """

    def __init__(self, network_config: Any, timeout: float = 30) -> None:
        self.network_config = network_config
        self.timeout = timeout
        self._session = requests.Session()

    def call(self, method: str, params: Any = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params if params is not None else [],
        }
        headers = {"content-type": "application/json"}
        if self.network_config.api_key:
            headers["x-api-key"] = self.network_config.api_key
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self.network_config.rpc_url,
                data=json.dumps(payload),
                headers=headers,
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                f"RPC connection to {self.network_config.rpc_url} failed. Check your network "
                "connection and the rpc_url configured for this network."
            ) from exc
        try:
            self._raise_for_status(response)
        except requests.HTTPError as exc:
            raise RPCTransportError(
                "RPC server returned an HTTP error; check the rpc_url and api_key for this network.",
                status_code=response.status_code,
            ) from exc
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if result.get("error"):
            error = result["error"]
            cause = error.get("cause") or {}
            raise RPCError(
                error.get("code", -1),
                error.get("message", "unknown"),
                name=cause.get("name") or error.get("name"),
                data=error.get("data"),
            )
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        # JSON-RPC errors normally arrive with HTTP 200; anything else is a gateway problem.
        if not response.ok:
            logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
            logger.error("RPC error body: %s", response.text)
            if response.status_code in {401, 403}:
                raise RPCTransportError(
                    f"Unauthorized ({response.status_code}). Ensure NEAR_TXWIZARD_API_KEY (or api_key "
                    "in your .near-txwizard.yaml) is valid for this RPC provider.",
                    status_code=response.status_code,
                )
        response.raise_for_status()

    # Convenience wrappers -------------------------------------------------

    def query(self, params: Dict[str, Any]) -> Dict[str, Any]:
        result = self.call("query", params)
        # Older nodes report view failures inside a successful response.
        if isinstance(result, dict) and result.get("error"):
            raise RPCError(-32000, str(result["error"]), name="QUERY_ERROR", data=result["error"])
        return result

    def call_view_function(
        self,
        contract_id: str,
        method_name: str,
        args: bytes,
        finality: str = FINALITY_FINAL,
    ) -> CallResult:
        result = self.query(
            {
                "request_type": "call_function",
                "finality": finality,
                "account_id": contract_id,
                "method_name": method_name,
                "args_base64": base64.b64encode(args).decode("ascii"),
            }
        )
        return CallResult(
            result=bytes(result.get("result", [])),
            logs=list(result.get("logs", [])),
        )

    def view_access_key(
        self, account_id: str, public_key: str, finality: str = FINALITY_FINAL
    ) -> Dict[str, Any]:
        return self.query(
            {
                "request_type": "view_access_key",
                "finality": finality,
                "account_id": account_id,
                "public_key": public_key,
            }
        )

    def broadcast_tx_commit(self, signed_transaction_b64: str) -> Dict[str, Any]:
        return self.call("broadcast_tx_commit", [signed_transaction_b64])


def call_view_method(
    network_config: Any,
    contract_id: str,
    method_name: str,
    args: Optional[Dict[str, Any]] = None,
    finality: str = FINALITY_FINAL,
) -> CallResult:
    """Run a read-only contract method, wrapping failures in :class:`QueryError`."""

    args_bytes = json.dumps(args or {}, separators=(",", ":")).encode("utf-8")
    try:
        return network_config.json_rpc_client().call_view_function(
            contract_id, method_name, args_bytes, finality
        )
    except (RPCError, RPCTransportError) as exc:
        hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
        hint_suffix = f"\nHint: {hint}" if hint else ""
        raise QueryError(
            f"Failed to fetch query for view method: '{method_name}' "
            f"(contract <{contract_id}> on network <{network_config.network_name}>): {exc}{hint_suffix}",
            contract_id=contract_id,
            method_name=method_name,
            network_name=network_config.network_name,
        ) from exc
