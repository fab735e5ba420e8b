"""Transfer tokens: native NEAR or a fungible token (NEP-141).

The fungible-token chain gathers signer, token contract, receiver, amount,
memo, gas and deposit, one stage at a time. The deposit stage is terminal: it
turns the accumulated context into an :class:`ActionContext` whose hooks
resolve the amount and check the receiver's storage registration only once a
network is known.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..config import GlobalContext, NetworkConfig
from ..ft_properties import (
    ExactAmount,
    FungibleToken,
    FungibleTokenTransferAmount,
    normalize_exact_amount,
    params_ft_metadata,
    parse_ft_transfer_amount,
    resolve_ft_transfer_amount,
)
from ..lifecycle import ActionContext, Emit, TransactionResult
from ..stages import Prompter, Stage, run_stages, select_branch
from ..transaction import FinalExecutionOutcome, PrepopulatedTransaction, TransferAction
from ..transaction_options import complete_transaction
from ..tx_builder import get_prepopulated_ft_transaction
from ..units import NearGas, NearToken
from .common import account_stage, add_transaction_arguments, deposit_stage, gas_stage, route_report

logger = logging.getLogger(__name__)

LABEL = "Transfer tokens"

CURRENCY_NEAR = "near"
CURRENCY_FT = "ft"
CURRENCY_CHOICES = (
    (CURRENCY_NEAR, "The transfer is carried out in NEAR tokens"),
    (CURRENCY_FT, "The transfer is carried out in FT tokens"),
)


@dataclass(frozen=True)
class TransferContext:
    global_context: GlobalContext


@dataclass(frozen=True)
class SignerAccountContext:
    global_context: GlobalContext
    signer_account_id: str

    @classmethod
    def from_previous_context(cls, previous_context: TransferContext, signer_account_id: str) -> "SignerAccountContext":
        return cls(global_context=previous_context.global_context, signer_account_id=signer_account_id)


# NEAR ------------------------------------------------------------------------


@dataclass(frozen=True)
class ReceiverNearContext:
    global_context: GlobalContext
    signer_account_id: str
    receiver_account_id: str

    @classmethod
    def from_previous_context(
        cls, previous_context: SignerAccountContext, receiver_account_id: str
    ) -> "ReceiverNearContext":
        return cls(
            global_context=previous_context.global_context,
            signer_account_id=previous_context.signer_account_id,
            receiver_account_id=receiver_account_id,
        )


@dataclass(frozen=True)
class NearTransferPrepopulate:
    signer_account_id: str
    receiver_account_id: str
    amount: NearToken

    def __call__(self, network_config: NetworkConfig) -> PrepopulatedTransaction:
        return PrepopulatedTransaction(
            signer_id=self.signer_account_id,
            receiver_id=self.receiver_account_id,
            actions=(TransferAction(deposit=self.amount),),
        )


@dataclass(frozen=True)
class NearTransferAfterSending:
    signer_account_id: str
    receiver_account_id: str
    amount: NearToken
    emit: Emit = field(default=print, repr=False, compare=False)

    def __call__(self, outcome: FinalExecutionOutcome, network_config: NetworkConfig) -> None:
        self.emit(
            f"<{self.signer_account_id}> has transferred {self.amount} "
            f"to <{self.receiver_account_id}> successfully."
        )


def near_amount_action_context(previous_context: ReceiverNearContext, amount: NearToken) -> ActionContext:
    return ActionContext(
        global_context=previous_context.global_context,
        interacting_with_account_ids=(
            previous_context.signer_account_id,
            previous_context.receiver_account_id,
        ),
        get_prepopulated_transaction=NearTransferPrepopulate(
            previous_context.signer_account_id, previous_context.receiver_account_id, amount
        ),
        on_after_sending_transaction=NearTransferAfterSending(
            previous_context.signer_account_id, previous_context.receiver_account_id, amount
        ),
    )


NEAR_STAGES = (
    account_stage("signer", "What is the sender account ID?", SignerAccountContext.from_previous_context),
    account_stage("receiver", "What is the receiver account ID?", ReceiverNearContext.from_previous_context),
    Stage(
        name="amount",
        question="How many NEAR Tokens do you want to transfer? (example: 10 NEAR or 0.5 near or 10000 yoctonear)",
        parse=NearToken.from_str,
        advance=near_amount_action_context,
    ),
)


# Fungible tokens -------------------------------------------------------------


@dataclass(frozen=True)
class FtContractContext:
    global_context: GlobalContext
    signer_account_id: str
    ft_contract_account_id: str

    @classmethod
    def from_previous_context(
        cls, previous_context: SignerAccountContext, ft_contract_account_id: str
    ) -> "FtContractContext":
        return cls(
            global_context=previous_context.global_context,
            signer_account_id=previous_context.signer_account_id,
            ft_contract_account_id=ft_contract_account_id,
        )


@dataclass(frozen=True)
class ReceiverFtContext:
    global_context: GlobalContext
    signer_account_id: str
    ft_contract_account_id: str
    receiver_account_id: str

    @classmethod
    def from_previous_context(
        cls, previous_context: FtContractContext, receiver_account_id: str
    ) -> "ReceiverFtContext":
        return cls(
            global_context=previous_context.global_context,
            signer_account_id=previous_context.signer_account_id,
            ft_contract_account_id=previous_context.ft_contract_account_id,
            receiver_account_id=receiver_account_id,
        )


@dataclass(frozen=True)
class AmountFtContext:
    global_context: GlobalContext
    signer_account_id: str
    ft_contract_account_id: str
    receiver_account_id: str
    ft_transfer_amount: FungibleTokenTransferAmount

    @classmethod
    def from_previous_context(
        cls, previous_context: ReceiverFtContext, ft_transfer_amount: FungibleTokenTransferAmount
    ) -> "AmountFtContext":
        return cls(
            global_context=previous_context.global_context,
            signer_account_id=previous_context.signer_account_id,
            ft_contract_account_id=previous_context.ft_contract_account_id,
            receiver_account_id=previous_context.receiver_account_id,
            ft_transfer_amount=ft_transfer_amount,
        )


@dataclass(frozen=True)
class MemoContext:
    global_context: GlobalContext
    signer_account_id: str
    ft_contract_account_id: str
    receiver_account_id: str
    ft_transfer_amount: FungibleTokenTransferAmount
    memo: Optional[str]

    @classmethod
    def from_previous_context(cls, previous_context: AmountFtContext, memo: Optional[str]) -> "MemoContext":
        return cls(
            global_context=previous_context.global_context,
            signer_account_id=previous_context.signer_account_id,
            ft_contract_account_id=previous_context.ft_contract_account_id,
            receiver_account_id=previous_context.receiver_account_id,
            ft_transfer_amount=previous_context.ft_transfer_amount,
            memo=memo,
        )


@dataclass(frozen=True)
class PrepaidGasContext:
    global_context: GlobalContext
    signer_account_id: str
    ft_contract_account_id: str
    receiver_account_id: str
    ft_transfer_amount: FungibleTokenTransferAmount
    memo: Optional[str]
    gas: NearGas

    @classmethod
    def from_previous_context(cls, previous_context: MemoContext, gas: NearGas) -> "PrepaidGasContext":
        return cls(
            global_context=previous_context.global_context,
            signer_account_id=previous_context.signer_account_id,
            ft_contract_account_id=previous_context.ft_contract_account_id,
            receiver_account_id=previous_context.receiver_account_id,
            ft_transfer_amount=previous_context.ft_transfer_amount,
            memo=previous_context.memo,
            gas=gas,
        )


@dataclass
class PendingFtAmount:
    """Transfer amount resolved lazily, at most once per network.

    Shared by the prepopulate and after-sending hooks of one action context so
    that the success message reports exactly the amount that was sent.
    """

    ft_transfer_amount: FungibleTokenTransferAmount
    signer_account_id: str
    ft_contract_account_id: str
    _resolved: dict[str, FungibleToken] = field(default_factory=dict, repr=False, compare=False)

    def resolve(self, network_config: NetworkConfig) -> FungibleToken:
        cached = self._resolved.get(network_config.network_name)
        if cached is not None:
            return cached
        if isinstance(self.ft_transfer_amount, ExactAmount):
            metadata = params_ft_metadata(self.ft_contract_account_id, network_config)
            token = normalize_exact_amount(self.ft_transfer_amount.token, metadata)
        else:
            token = resolve_ft_transfer_amount(
                self.ft_transfer_amount,
                network_config,
                self.signer_account_id,
                self.ft_contract_account_id,
            )
        logger.debug("Resolved transfer amount %s on %s", token, network_config.network_name)
        self._resolved[network_config.network_name] = token
        return token


@dataclass(frozen=True)
class FtTransferPrepopulate:
    pending_amount: PendingFtAmount
    receiver_account_id: str
    memo: Optional[str]
    gas: NearGas
    deposit: NearToken

    def __call__(self, network_config: NetworkConfig) -> PrepopulatedTransaction:
        amount_ft = self.pending_amount.resolve(network_config)
        return get_prepopulated_ft_transaction(
            network_config,
            self.pending_amount.ft_contract_account_id,
            self.receiver_account_id,
            self.pending_amount.signer_account_id,
            ExactAmount(amount_ft),
            self.memo,
            self.deposit,
            self.gas,
        )


@dataclass(frozen=True)
class FtTransferAfterSending:
    pending_amount: PendingFtAmount
    receiver_account_id: str
    emit: Emit = field(default=print, repr=False, compare=False)

    def __call__(self, outcome: FinalExecutionOutcome, network_config: NetworkConfig) -> None:
        amount_ft = self.pending_amount.resolve(network_config)
        self.emit(
            f"<{self.pending_amount.signer_account_id}> has successfully transferred {amount_ft} "
            f"(FT-contract: {self.pending_amount.ft_contract_account_id}) to <{self.receiver_account_id}>."
        )


def ft_deposit_action_context(previous_context: PrepaidGasContext, deposit: NearToken) -> ActionContext:
    pending_amount = PendingFtAmount(
        ft_transfer_amount=previous_context.ft_transfer_amount,
        signer_account_id=previous_context.signer_account_id,
        ft_contract_account_id=previous_context.ft_contract_account_id,
    )
    return ActionContext(
        global_context=previous_context.global_context,
        interacting_with_account_ids=(
            previous_context.ft_contract_account_id,
            previous_context.signer_account_id,
            previous_context.receiver_account_id,
        ),
        get_prepopulated_transaction=FtTransferPrepopulate(
            pending_amount=pending_amount,
            receiver_account_id=previous_context.receiver_account_id,
            memo=previous_context.memo,
            gas=previous_context.gas,
            deposit=deposit,
        ),
        on_after_sending_transaction=FtTransferAfterSending(
            pending_amount=pending_amount,
            receiver_account_id=previous_context.receiver_account_id,
        ),
    )


FT_STAGES = (
    account_stage("signer", "What is the sender account ID?", SignerAccountContext.from_previous_context),
    account_stage("ft_contract", "What is the ft-contract account ID?", FtContractContext.from_previous_context),
    account_stage("receiver", "What is the receiver account ID?", ReceiverFtContext.from_previous_context),
    Stage(
        name="amount",
        question="Enter an FT amount to transfer (example: 10 USDT or 0.5 usdc or all)",
        parse=parse_ft_transfer_amount,
        advance=AmountFtContext.from_previous_context,
    ),
    Stage(
        name="memo",
        question="Enter a memo for transfer (optional)",
        optional=True,
        strip=False,
        advance=MemoContext.from_previous_context,
    ),
    gas_stage(PrepaidGasContext.from_previous_context),
    deposit_stage(ft_deposit_action_context),
)


def build_action_context(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> ActionContext:
    currency = select_branch(
        "currency",
        "Select the currency you want to transfer",
        CURRENCY_CHOICES,
        global_context,
        supplied,
        prompter,
    )
    stages = FT_STAGES if currency == CURRENCY_FT else NEAR_STAGES
    return run_stages(TransferContext(global_context), stages, supplied, prompter)


def run(
    global_context: GlobalContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> TransactionResult:
    action_context = route_report(build_action_context(global_context, supplied, prompter), emit)
    return complete_transaction(action_context, supplied, prompter, emit)


def add_arguments(parser: argparse.ArgumentParser) -> None:
    currencies = parser.add_subparsers(dest="currency")
    near_parser = currencies.add_parser("near", help="Transfer NEAR tokens")
    near_parser.add_argument("--signer", help="Sender account ID")
    near_parser.add_argument("--receiver", help="Receiver account ID")
    near_parser.add_argument("--amount", help="Amount, e.g. '1.5 NEAR' or '10000 yoctonear'")
    add_transaction_arguments(near_parser)

    ft_parser = currencies.add_parser("ft", help="Transfer fungible tokens")
    ft_parser.add_argument("--signer", help="Sender account ID")
    ft_parser.add_argument("--ft-contract", dest="ft_contract", help="Token contract account ID")
    ft_parser.add_argument("--receiver", help="Receiver account ID")
    ft_parser.add_argument("--amount", help="Token amount, e.g. '10 USDC', or 'all' for the full balance")
    ft_parser.add_argument("--memo", help="Optional memo attached to ft_transfer")
    ft_parser.add_argument("--gas", help="Gas for each function call (default prompt: 100 TeraGas)")
    ft_parser.add_argument("--deposit", help="Deposit attached to ft_transfer, e.g. '1 yoctoNEAR'")
    add_transaction_arguments(ft_parser)
