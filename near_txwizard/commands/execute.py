"""Execute a contract method: a signed change call or a read-only view."""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..config import GlobalContext, NetworkConfig
from ..lifecycle import ActionContext, Emit, TransactionResult
from ..rpc_client import CallResult, call_view_method
from ..stages import Prompter, Stage, run_stages, select_branch
from ..transaction import FinalExecutionOutcome, FunctionCallAction, PrepopulatedTransaction
from ..transaction_options import complete_transaction
from ..units import NearGas, NearToken
from .common import (
    account_stage,
    add_transaction_arguments,
    deposit_stage,
    gas_stage,
    parse_json_args,
    route_report,
)

LABEL = "Execute function (contract method)"

CHANGE_METHOD = "change-method"
VIEW_METHOD = "view-method"
METHOD_CHOICES = (
    (CHANGE_METHOD, "Calling a change method"),
    (VIEW_METHOD, "Calling a view method"),
)


@dataclass(frozen=True)
class ExecuteContext:
    global_context: GlobalContext


@dataclass(frozen=True)
class ContractContext:
    global_context: GlobalContext
    contract_account_id: str

    @classmethod
    def from_previous_context(cls, previous_context: ExecuteContext, contract_account_id: str) -> "ContractContext":
        return cls(previous_context.global_context, contract_account_id)


@dataclass(frozen=True)
class FunctionContext:
    global_context: GlobalContext
    contract_account_id: str
    method_name: str

    @classmethod
    def from_previous_context(cls, previous_context: ContractContext, method_name: str) -> "FunctionContext":
        return cls(previous_context.global_context, previous_context.contract_account_id, method_name)


@dataclass(frozen=True)
class FunctionArgsContext:
    global_context: GlobalContext
    contract_account_id: str
    method_name: str
    function_args: bytes

    @classmethod
    def from_previous_context(cls, previous_context: FunctionContext, function_args: bytes) -> "FunctionArgsContext":
        return cls(
            previous_context.global_context,
            previous_context.contract_account_id,
            previous_context.method_name,
            function_args,
        )


@dataclass(frozen=True)
class CallGasContext:
    global_context: GlobalContext
    contract_account_id: str
    method_name: str
    function_args: bytes
    gas: NearGas

    @classmethod
    def from_previous_context(cls, previous_context: FunctionArgsContext, gas: NearGas) -> "CallGasContext":
        return cls(
            previous_context.global_context,
            previous_context.contract_account_id,
            previous_context.method_name,
            previous_context.function_args,
            gas,
        )


@dataclass(frozen=True)
class CallDepositContext:
    global_context: GlobalContext
    contract_account_id: str
    method_name: str
    function_args: bytes
    gas: NearGas
    deposit: NearToken

    @classmethod
    def from_previous_context(cls, previous_context: CallGasContext, deposit: NearToken) -> "CallDepositContext":
        return cls(
            previous_context.global_context,
            previous_context.contract_account_id,
            previous_context.method_name,
            previous_context.function_args,
            previous_context.gas,
            deposit,
        )


@dataclass(frozen=True)
class FunctionCallPrepopulate:
    signer_account_id: str
    contract_account_id: str
    method_name: str
    function_args: bytes
    gas: NearGas
    deposit: NearToken

    def __call__(self, network_config: NetworkConfig) -> PrepopulatedTransaction:
        return PrepopulatedTransaction(
            signer_id=self.signer_account_id,
            receiver_id=self.contract_account_id,
            actions=(
                FunctionCallAction(
                    method_name=self.method_name,
                    args=self.function_args,
                    gas=self.gas,
                    deposit=self.deposit,
                ),
            ),
        )


def format_return_value(value: bytes) -> str:
    if not value:
        return "Empty result"
    try:
        return json.dumps(json.loads(value.decode("utf-8")), indent=2)
    except (UnicodeDecodeError, ValueError):
        return value.decode("utf-8", "replace")


@dataclass(frozen=True)
class FunctionCallAfterSending:
    contract_account_id: str
    method_name: str
    emit: Emit = field(default=print, repr=False, compare=False)

    def __call__(self, outcome: FinalExecutionOutcome, network_config: NetworkConfig) -> None:
        value = outcome.success_value() or b""
        self.emit(f"Function <{self.method_name}> of <{self.contract_account_id}> returned:")
        self.emit(format_return_value(value))


def signer_action_context(previous_context: CallDepositContext, signer_account_id: str) -> ActionContext:
    return ActionContext(
        global_context=previous_context.global_context,
        interacting_with_account_ids=(signer_account_id, previous_context.contract_account_id),
        get_prepopulated_transaction=FunctionCallPrepopulate(
            signer_account_id=signer_account_id,
            contract_account_id=previous_context.contract_account_id,
            method_name=previous_context.method_name,
            function_args=previous_context.function_args,
            gas=previous_context.gas,
            deposit=previous_context.deposit,
        ),
        on_after_sending_transaction=FunctionCallAfterSending(
            previous_context.contract_account_id, previous_context.method_name
        ),
    )


CONTRACT_STAGE = account_stage("contract", "What is the contract account ID?", ContractContext.from_previous_context)
FUNCTION_STAGE = Stage(
    name="function",
    question="What is the name of the function?",
    advance=FunctionContext.from_previous_context,
)
ARGS_STAGE = Stage(
    name="args",
    question="Enter arguments to this function (JSON object)",
    parse=parse_json_args,
    default="{}",
    advance=FunctionArgsContext.from_previous_context,
)

CHANGE_METHOD_STAGES = (
    CONTRACT_STAGE,
    FUNCTION_STAGE,
    ARGS_STAGE,
    gas_stage(CallGasContext.from_previous_context),
    deposit_stage(CallDepositContext.from_previous_context),
    account_stage("signer", "What is the signer account ID?", signer_action_context),
)


# View method -----------------------------------------------------------------


@dataclass(frozen=True)
class ViewNetworkContext:
    global_context: GlobalContext
    contract_account_id: str
    method_name: str
    function_args: bytes
    network_config: NetworkConfig

    @classmethod
    def from_previous_context(cls, previous_context: FunctionArgsContext, network_name: str) -> "ViewNetworkContext":
        return cls(
            previous_context.global_context,
            previous_context.contract_account_id,
            previous_context.method_name,
            previous_context.function_args,
            previous_context.global_context.network(network_name),
        )


VIEW_METHOD_STAGES = (
    CONTRACT_STAGE,
    FUNCTION_STAGE,
    ARGS_STAGE,
    Stage(
        name="network",
        question="What is the name of the network?",
        advance=ViewNetworkContext.from_previous_context,
        choices=lambda context: [(name, name) for name in context.global_context.networks],
    ),
)


def view_function(context: ViewNetworkContext, emit: Emit = print) -> CallResult:
    call_result = call_view_method(
        context.network_config,
        context.contract_account_id,
        context.method_name,
        json.loads(context.function_args.decode("utf-8")),
    )
    for line in call_result.logs:
        emit(f"Log: {line}")
    emit(f"Function <{context.method_name}> of <{context.contract_account_id}> returned:")
    emit(format_return_value(call_result.result))
    return call_result


def run(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> TransactionResult | CallResult:
    method_kind = select_branch(
        "method_kind",
        "Choose the method type",
        METHOD_CHOICES,
        global_context,
        supplied,
        prompter,
    )
    if method_kind == VIEW_METHOD:
        view_context = run_stages(ExecuteContext(global_context), VIEW_METHOD_STAGES, supplied, prompter)
        return view_function(view_context, emit)
    action_context = run_stages(ExecuteContext(global_context), CHANGE_METHOD_STAGES, supplied, prompter)
    action_context = route_report(action_context, emit)
    return complete_transaction(action_context, supplied, prompter, emit)


def _add_call_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--contract", help="Contract account ID")
    parser.add_argument("--function", help="Method name")
    parser.add_argument("--args", help="JSON object with the method arguments")


def add_arguments(parser: argparse.ArgumentParser) -> None:
    kinds = parser.add_subparsers(dest="method_kind")
    change_parser = kinds.add_parser(CHANGE_METHOD, help="Call a change method in a signed transaction")
    _add_call_arguments(change_parser)
    change_parser.add_argument("--gas", help="Prepaid gas, e.g. '30 TeraGas'")
    change_parser.add_argument("--deposit", help="Attached deposit, e.g. '0 NEAR'")
    change_parser.add_argument("--signer", help="Signer account ID")
    add_transaction_arguments(change_parser)

    view_parser = kinds.add_parser(VIEW_METHOD, help="Call a read-only view method")
    _add_call_arguments(view_parser)
    view_parser.add_argument("--network", help="Network name from the configuration")
