"""Helpers that do not build a transaction of their own."""

from __future__ import annotations

import argparse
import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..config import GlobalContext, NetworkConfig
from ..ft_properties import FungibleToken, get_ft_balance, params_ft_metadata
from ..keys import generate_keypair
from ..lifecycle import Emit, ExecutionFailure, broadcast_signed_transaction, report_outcome
from ..stages import Prompter, Stage, run_stages, select_branch
from ..transaction import FinalExecutionOutcome
from .common import account_stage

LABEL = "Helpers"

GENERATE_KEYPAIR = "generate-keypair"
VIEW_FT_BALANCE = "view-ft-balance"
SEND_SIGNED_TRANSACTION = "send-signed-transaction"
UTIL_CHOICES = (
    (GENERATE_KEYPAIR, "Generate a new ed25519 key pair"),
    (VIEW_FT_BALANCE, "View the fungible-token balance of an account"),
    (SEND_SIGNED_TRANSACTION, "Broadcast a signed transaction (base64)"),
)


def _network_choices(context: Any) -> list[tuple[str, str]]:
    return [(name, name) for name in context.global_context.networks]


def generate_keypair_json() -> dict[str, str]:
    key_pair = generate_keypair()
    return {
        "public_key": str(key_pair.public_key),
        "private_key": key_pair.secret_key_str(),
    }


# View FT balance -------------------------------------------------------------


@dataclass(frozen=True)
class BalanceContractContext:
    global_context: GlobalContext
    ft_contract_account_id: str

    @classmethod
    def from_previous_context(cls, previous_context: Any, ft_contract_account_id: str) -> "BalanceContractContext":
        return cls(previous_context.global_context, ft_contract_account_id)


@dataclass(frozen=True)
class BalanceAccountContext:
    global_context: GlobalContext
    ft_contract_account_id: str
    account_id: str

    @classmethod
    def from_previous_context(cls, previous_context: BalanceContractContext, account_id: str) -> "BalanceAccountContext":
        return cls(previous_context.global_context, previous_context.ft_contract_account_id, account_id)


@dataclass(frozen=True)
class BalanceNetworkContext:
    global_context: GlobalContext
    ft_contract_account_id: str
    account_id: str
    network_config: NetworkConfig

    @classmethod
    def from_previous_context(cls, previous_context: BalanceAccountContext, network_name: str) -> "BalanceNetworkContext":
        return cls(
            previous_context.global_context,
            previous_context.ft_contract_account_id,
            previous_context.account_id,
            previous_context.global_context.network(network_name),
        )


VIEW_FT_BALANCE_STAGES = (
    account_stage("ft_contract", "What is the ft-contract account ID?", BalanceContractContext.from_previous_context),
    account_stage("account", "Which account's balance do you want to view?", BalanceAccountContext.from_previous_context),
    Stage(
        name="network",
        question="What is the name of the network?",
        advance=BalanceNetworkContext.from_previous_context,
        choices=_network_choices,
    ),
)


def view_ft_balance(context: BalanceNetworkContext) -> FungibleToken:
    balance = get_ft_balance(context.network_config, context.ft_contract_account_id, context.account_id)
    metadata = params_ft_metadata(context.ft_contract_account_id, context.network_config)
    return FungibleToken.from_params_ft(balance, metadata.decimals, metadata.symbol)


# Send signed transaction -----------------------------------------------------


def parse_signed_transaction(raw: str) -> str:
    """Check that *raw* is base64 and return it unchanged for broadcasting."""

    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("signed transaction must be base64 encoded") from exc
    if not decoded:
        raise ValueError("signed transaction is empty")
    return raw


@dataclass(frozen=True)
class SignedTransactionContext:
    global_context: GlobalContext
    signed_transaction: str

    @classmethod
    def from_previous_context(cls, previous_context: Any, signed_transaction: str) -> "SignedTransactionContext":
        return cls(previous_context.global_context, signed_transaction)


@dataclass(frozen=True)
class SendNetworkContext:
    global_context: GlobalContext
    signed_transaction: str
    network_config: NetworkConfig

    @classmethod
    def from_previous_context(cls, previous_context: SignedTransactionContext, network_name: str) -> "SendNetworkContext":
        return cls(
            previous_context.global_context,
            previous_context.signed_transaction,
            previous_context.global_context.network(network_name),
        )


SEND_SIGNED_TRANSACTION_STAGES = (
    Stage(
        name="signed_transaction",
        question="Enter a signed transaction as base64-encoded string",
        parse=parse_signed_transaction,
        advance=SignedTransactionContext.from_previous_context,
    ),
    Stage(
        name="network",
        question="What is the name of the network?",
        advance=SendNetworkContext.from_previous_context,
        choices=_network_choices,
    ),
)


@dataclass(frozen=True)
class UtilsContext:
    global_context: GlobalContext


def run(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> Any:
    util = select_branch("util", "Choose a helper", UTIL_CHOICES, global_context, supplied, prompter)
    if util == GENERATE_KEYPAIR:
        key_json = generate_keypair_json()
        emit(json.dumps(key_json, indent=2))
        return key_json
    if util == VIEW_FT_BALANCE:
        context = run_stages(UtilsContext(global_context), VIEW_FT_BALANCE_STAGES, supplied, prompter)
        balance = view_ft_balance(context)
        emit(
            f"<{context.account_id}> account has {balance} "
            f"(FT-contract: {context.ft_contract_account_id})"
        )
        return balance
    context = run_stages(UtilsContext(global_context), SEND_SIGNED_TRANSACTION_STAGES, supplied, prompter)
    outcome: FinalExecutionOutcome = broadcast_signed_transaction(context.network_config, context.signed_transaction)
    report_outcome(outcome, context.network_config, emit)
    if outcome.is_failure:
        raise ExecutionFailure(outcome)
    emit(f"Transaction {outcome.transaction_hash} finished with status {outcome.status.kind}.")
    return outcome


def add_arguments(parser: argparse.ArgumentParser) -> None:
    helpers = parser.add_subparsers(dest="util")
    helpers.add_parser(GENERATE_KEYPAIR, help="Generate a new ed25519 key pair")

    balance_parser = helpers.add_parser(VIEW_FT_BALANCE, help="View a fungible-token balance")
    balance_parser.add_argument("--ft-contract", dest="ft_contract", help="Token contract account ID")
    balance_parser.add_argument("--account", help="Account whose balance to show")
    balance_parser.add_argument("--network", help="Network name from the configuration")

    send_parser = helpers.add_parser(SEND_SIGNED_TRANSACTION, help="Broadcast a base64 signed transaction")
    send_parser.add_argument("--signed-transaction", dest="signed_transaction", help="Base64 signed transaction")
    send_parser.add_argument("--network", help="Network name from the configuration")
