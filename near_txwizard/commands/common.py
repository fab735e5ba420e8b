"""Parsers and stage factories shared by the command families."""

from __future__ import annotations

import argparse
import json
import re
from dataclasses import replace
from typing import Any, Callable

from ..lifecycle import ActionContext, Emit
from ..stages import Stage
from ..transaction import encode_args
from ..units import NearGas, NearToken, validate_gas

_ACCOUNT_ID_RE = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")


def parse_account_id(raw: str) -> str:
    if not 2 <= len(raw) <= 64 or _ACCOUNT_ID_RE.match(raw) is None:
        raise ValueError(f"'{raw}' is not a valid account id")
    return raw


def parse_json_args(raw: str) -> bytes:
    """Function arguments given as a JSON object, re-encoded canonically."""

    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise ValueError(f"arguments must be valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise ValueError("arguments must be a JSON object")
    return encode_args(value)


def parse_method_names(raw: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def account_stage(name: str, question: str, advance: Callable[[Any, Any], Any]) -> Stage:
    return Stage(name=name, question=question, parse=parse_account_id, advance=advance)


def gas_stage(advance: Callable[[Any, Any], Any]) -> Stage:
    return Stage(
        name="gas",
        question="Enter gas for function call",
        parse=NearGas.from_str,
        validate=validate_gas,
        default="100 TeraGas",
        advance=advance,
    )


def deposit_stage(advance: Callable[[Any, Any], Any]) -> Stage:
    return Stage(
        name="deposit",
        question="Enter deposit for a function call (example: 10 NEAR or 0.5 near or 10000 yoctonear)",
        parse=NearToken.from_str,
        default="1 yoctoNEAR",
        advance=advance,
    )


def add_transaction_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags for the network, signing and submission stages."""

    parser.add_argument("--network", help="Network name from the configuration (mainnet, testnet, ...)")
    parser.add_argument(
        "--sign-with",
        dest="sign_with",
        choices=["plaintext-private-key", "keychain", "sign-later"],
        help="How to sign the transaction",
    )
    parser.add_argument("--private-key", dest="private_key", help="ed25519:<base58> secret key")
    parser.add_argument(
        "--signer-public-key",
        dest="signer_public_key",
        help="Public key of the signer (used with --sign-with sign-later)",
    )
    parser.add_argument(
        "--submit",
        choices=["send", "display"],
        help="Broadcast the signed transaction or print it as base64",
    )


def route_report(action_context: ActionContext, emit: Emit) -> ActionContext:
    """Send the family's after-sending report through *emit*."""

    report = replace(action_context.on_after_sending_transaction, emit=emit)
    return replace(action_context, on_after_sending_transaction=report)
