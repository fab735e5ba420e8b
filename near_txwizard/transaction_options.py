"""Shared tail of every transaction wizard: network, signing method, submission."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .config import NetworkConfig
from .keys import KeyPair, PublicKey
from .lifecycle import (
    SUBMIT_DISPLAY,
    SUBMIT_SEND,
    ActionContext,
    Emit,
    TransactionPlan,
    TransactionResult,
    execute_transaction,
)
from .signer import SignLater, SignWithKeychain, SignWithPlaintextPrivateKey
from .stages import Prompter, Stage, advance_stage, select_branch

SIGN_WITH_PLAINTEXT_PRIVATE_KEY = "plaintext-private-key"
SIGN_WITH_KEYCHAIN = "keychain"
SIGN_LATER = "sign-later"

SIGNING_CHOICES = (
    (SIGN_WITH_PLAINTEXT_PRIVATE_KEY, "Sign the transaction with a plaintext private key"),
    (SIGN_WITH_KEYCHAIN, "Sign the transaction with a key from the legacy keychain"),
    (SIGN_LATER, "Prepare an unsigned transaction to sign later"),
)

SUBMISSION_CHOICES = (
    (SUBMIT_SEND, "Send the transaction to the network"),
    (SUBMIT_DISPLAY, "Print the signed transaction (base64) to relay it later"),
)


@dataclass(frozen=True)
class NetworkForTransactionContext:
    action_context: ActionContext
    network_config: NetworkConfig

    @classmethod
    def from_previous_context(
        cls, previous_context: ActionContext, network_name: str
    ) -> "NetworkForTransactionContext":
        return cls(
            action_context=previous_context,
            network_config=previous_context.global_context.network(network_name),
        )


@dataclass(frozen=True)
class SigningContext:
    action_context: ActionContext
    network_config: NetworkConfig
    signing_method: Any

    @classmethod
    def from_previous_context(
        cls, previous_context: NetworkForTransactionContext, signing_method: Any
    ) -> "SigningContext":
        return cls(
            action_context=previous_context.action_context,
            network_config=previous_context.network_config,
            signing_method=signing_method,
        )


def _network_choices(context: ActionContext) -> list[tuple[str, str]]:
    return [
        (name, f"{name} ({network.rpc_url})")
        for name, network in context.global_context.networks.items()
    ]


def _submission_plan(previous_context: SigningContext, submission: str) -> TransactionPlan:
    return TransactionPlan(
        action_context=previous_context.action_context,
        network_config=previous_context.network_config,
        signing_method=previous_context.signing_method,
        submission=submission,
    )


NETWORK_STAGE = Stage(
    name="network",
    question="What is the name of the network?",
    advance=NetworkForTransactionContext.from_previous_context,
    choices=_network_choices,
)

PRIVATE_KEY_STAGE = Stage(
    name="private_key",
    question="Enter sender (signer) private (secret) key",
    parse=KeyPair.from_str,
    advance=lambda previous, key_pair: SigningContext.from_previous_context(
        previous, SignWithPlaintextPrivateKey(key_pair)
    ),
)

SIGNER_PUBLIC_KEY_STAGE = Stage(
    name="signer_public_key",
    question="Enter sender (signer) public key",
    parse=PublicKey.from_str,
    advance=lambda previous, public_key: SigningContext.from_previous_context(
        previous, SignLater(public_key)
    ),
)

SUBMIT_STAGE = Stage(
    name="submit",
    question="How would you like to proceed?",
    advance=_submission_plan,
    choices=SUBMISSION_CHOICES,
    default=SUBMIT_SEND,
)


def select_transaction_plan(
    action_context: ActionContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
) -> TransactionPlan:
    """Run the network, signing and submission stages on top of *action_context*."""

    network_context = advance_stage(NETWORK_STAGE, action_context, supplied, prompter)
    sign_with = select_branch(
        "sign_with",
        "Select a tool for signing the transaction",
        SIGNING_CHOICES,
        network_context,
        supplied,
        prompter,
        default=SIGN_WITH_KEYCHAIN,
    )
    if sign_with == SIGN_WITH_PLAINTEXT_PRIVATE_KEY:
        signing_context = advance_stage(PRIVATE_KEY_STAGE, network_context, supplied, prompter)
    elif sign_with == SIGN_LATER:
        signing_context = advance_stage(SIGNER_PUBLIC_KEY_STAGE, network_context, supplied, prompter)
        return _submission_plan(signing_context, SUBMIT_DISPLAY)
    else:
        signing_context = SigningContext.from_previous_context(
            network_context, SignWithKeychain(action_context.global_context.credentials_home)
        )
    return advance_stage(SUBMIT_STAGE, signing_context, supplied, prompter)


def complete_transaction(
    action_context: ActionContext,
    supplied: Mapping[str, Any],
    prompter: Optional[Prompter] = None,
    emit: Emit = print,
) -> TransactionResult:
    """Finish a command family: choose how to sign and send, then run the lifecycle."""

    plan = select_transaction_plan(action_context, supplied, prompter)
    emit("Accounts involved: " + ", ".join(f"<{account}>" for account in action_context.interacting_with_account_ids))
    return execute_transaction(plan, emit)
