"""Action builders for fungible-token transfers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .ft_properties import FungibleToken, FungibleTokenTransferAmount, resolve_ft_transfer_amount
from .rpc_client import QueryError, call_view_method
from .transaction import (
    Action,
    FtTransferArgs,
    FunctionCallAction,
    PrepopulatedTransaction,
    StorageDepositArgs,
)
from .units import NearGas, NearToken

logger = logging.getLogger(__name__)

# Fixed registration deposit; not user-configurable.
STORAGE_DEPOSIT = NearToken.from_millinear(100)


def normalized_memo(memo: Optional[str]) -> Optional[str]:
    if memo is None or not memo.strip():
        return None
    return memo


def is_storage_registered(network_config: Any, ft_contract_account_id: str, account_id: str) -> bool:
    """Return ``False`` when ``storage_balance_of`` reports no registration (JSON ``null``)."""

    call_result = call_view_method(
        network_config,
        ft_contract_account_id,
        "storage_balance_of",
        {"account_id": account_id},
    )
    try:
        storage_balance = call_result.parse_result_from_json()
    except ValueError as exc:
        raise QueryError(
            f"Malformed result from view method 'storage_balance_of' (contract <{ft_contract_account_id}> "
            f"on network <{network_config.network_name}>): {exc}",
            contract_id=ft_contract_account_id,
            method_name="storage_balance_of",
            network_name=network_config.network_name,
        ) from exc
    return storage_balance is not None


def ft_transfer_action(
    receiver_account_id: str,
    amount_ft: FungibleToken,
    memo: Optional[str],
    gas: NearGas,
    deposit: NearToken,
) -> FunctionCallAction:
    args = FtTransferArgs(
        receiver_id=receiver_account_id,
        amount=amount_ft.amount,
        memo=normalized_memo(memo),
    )
    return FunctionCallAction(
        method_name="ft_transfer",
        args=args.to_json_bytes(),
        gas=gas,
        deposit=deposit,
    )


def storage_deposit_action(account_id: str, gas: NearGas) -> FunctionCallAction:
    return FunctionCallAction(
        method_name="storage_deposit",
        args=StorageDepositArgs(account_id).to_json_bytes(),
        gas=gas,
        deposit=STORAGE_DEPOSIT,
    )


def build_ft_transfer_actions(
    network_config: Any,
    ft_contract_account_id: str,
    receiver_account_id: str,
    signer_account_id: str,
    ft_transfer_amount: FungibleTokenTransferAmount,
    memo: Optional[str],
    deposit: NearToken,
    gas: NearGas,
) -> list[Action]:
    """Return ``[storage_deposit?, ft_transfer]`` for the receiver.

    The registration check always runs; ``storage_deposit`` is prepended only
    when the receiver has no storage balance on the token contract.
    """

    amount_ft = resolve_ft_transfer_amount(
        ft_transfer_amount, network_config, signer_account_id, ft_contract_account_id
    )
    transfer = ft_transfer_action(receiver_account_id, amount_ft, memo, gas, deposit)

    if not is_storage_registered(network_config, ft_contract_account_id, receiver_account_id):
        logger.info(
            "<%s> is not registered with <%s>; adding storage_deposit of %s",
            receiver_account_id,
            ft_contract_account_id,
            STORAGE_DEPOSIT,
        )
        return [storage_deposit_action(receiver_account_id, gas), transfer]
    return [transfer]


def get_prepopulated_ft_transaction(
    network_config: Any,
    ft_contract_account_id: str,
    receiver_account_id: str,
    signer_account_id: str,
    ft_transfer_amount: FungibleTokenTransferAmount,
    memo: Optional[str],
    deposit: NearToken,
    gas: NearGas,
) -> PrepopulatedTransaction:
    actions = build_ft_transfer_actions(
        network_config,
        ft_contract_account_id,
        receiver_account_id,
        signer_account_id,
        ft_transfer_amount,
        memo,
        deposit,
        gas,
    )
    return PrepopulatedTransaction(
        signer_id=signer_account_id,
        receiver_id=ft_contract_account_id,
        actions=tuple(actions),
    )
