"""Fungible-token amounts, metadata lookups and transfer-amount resolution."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Union

from .rpc_client import FINALITY_FINAL, CallResult, QueryError, call_view_method
from .units import format_scaled

logger = logging.getLogger(__name__)

MAX_AMOUNT_KEYWORD = "all"

_FT_AMOUNT_RE = re.compile(r"^\s*(?P<number>[0-9]+(?:\.[0-9]*)?|\.[0-9]+)\s*(?P<symbol>[A-Za-z0-9_.\-]+)\s*$")


@dataclass(frozen=True)
class FtMetadata:
    decimals: int
    symbol: str


@dataclass(frozen=True)
class FungibleToken:
    """A token quantity in raw units together with its precision and symbol."""

    amount: int
    decimals: int
    symbol: str

    @classmethod
    def from_params_ft(cls, amount: int, decimals: int, symbol: str) -> "FungibleToken":
        return cls(amount=amount, decimals=decimals, symbol=symbol)

    @classmethod
    def from_str(cls, raw: str) -> "FungibleToken":
        """Parse ``10 USDC`` or ``1.5 wNEAR``; precision is the written fractional digits."""

        match = _FT_AMOUNT_RE.match(raw)
        if match is None:
            raise ValueError(
                f"Could not parse token amount from '{raw}' (example: 10 USDT or 0.5 usdc)"
            )
        number = match.group("number")
        whole, _, fraction = number.partition(".")
        return cls(
            amount=int((whole or "0") + fraction),
            decimals=len(fraction),
            symbol=match.group("symbol"),
        )

    def __str__(self) -> str:
        return f"{format_scaled(self.amount, self.decimals)} {self.symbol}"


@dataclass(frozen=True)
class ExactAmount:
    token: FungibleToken

    def __str__(self) -> str:
        return str(self.token)


@dataclass(frozen=True)
class MaxAmount:
    def __str__(self) -> str:
        return "all tokens"


FungibleTokenTransferAmount = Union[ExactAmount, MaxAmount]


def parse_ft_transfer_amount(raw: str) -> FungibleTokenTransferAmount:
    """Parse the amount stage input: an exact token amount or ``all``."""

    if raw.strip().lower() == MAX_AMOUNT_KEYWORD:
        return MaxAmount()
    return ExactAmount(FungibleToken.from_str(raw))


def _parse_view_json(call_result: CallResult, network_config: Any, contract_id: str, method_name: str) -> Any:
    try:
        return call_result.parse_result_from_json()
    except ValueError as exc:
        raise QueryError(
            f"Malformed result from view method '{method_name}' "
            f"(contract <{contract_id}> on network <{network_config.network_name}>): {exc}",
            contract_id=contract_id,
            method_name=method_name,
            network_name=network_config.network_name,
        ) from exc


def params_ft_metadata(
    ft_contract_account_id: str, network_config: Any, finality: str = FINALITY_FINAL
) -> FtMetadata:
    """Fetch ``decimals`` and ``symbol`` from the token contract's ``ft_metadata``."""

    call_result = call_view_method(network_config, ft_contract_account_id, "ft_metadata", {}, finality)
    metadata = _parse_view_json(call_result, network_config, ft_contract_account_id, "ft_metadata")
    try:
        return FtMetadata(decimals=int(metadata["decimals"]), symbol=str(metadata["symbol"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise QueryError(
            f"ft_metadata of <{ft_contract_account_id}> on network <{network_config.network_name}> "
            "does not contain decimals and symbol",
            contract_id=ft_contract_account_id,
            method_name="ft_metadata",
            network_name=network_config.network_name,
        ) from exc


def get_ft_balance(
    network_config: Any,
    ft_contract_account_id: str,
    account_id: str,
    finality: str = FINALITY_FINAL,
) -> int:
    """Return the raw ``ft_balance_of`` value for *account_id*."""

    call_result = call_view_method(
        network_config, ft_contract_account_id, "ft_balance_of", {"account_id": account_id}, finality
    )
    balance = _parse_view_json(call_result, network_config, ft_contract_account_id, "ft_balance_of")
    try:
        return int(balance)
    except (TypeError, ValueError) as exc:
        raise QueryError(
            f"ft_balance_of of <{ft_contract_account_id}> on network <{network_config.network_name}> "
            f"returned a non-integer balance: {balance!r}",
            contract_id=ft_contract_account_id,
            method_name="ft_balance_of",
            network_name=network_config.network_name,
        ) from exc


def resolve_ft_transfer_amount(
    ft_transfer_amount: FungibleTokenTransferAmount,
    network_config: Any,
    signer_account_id: str,
    ft_contract_account_id: str,
) -> FungibleToken:
    """Turn an exact amount or the ``all`` marker into a concrete quantity."""

    if isinstance(ft_transfer_amount, ExactAmount):
        return ft_transfer_amount.token

    balance = get_ft_balance(network_config, ft_contract_account_id, signer_account_id)
    metadata = params_ft_metadata(ft_contract_account_id, network_config)
    logger.debug(
        "Resolved full balance of %s on %s: %s raw units",
        signer_account_id,
        ft_contract_account_id,
        balance,
    )
    return FungibleToken.from_params_ft(balance, metadata.decimals, metadata.symbol)


def normalize_exact_amount(token: FungibleToken, metadata: FtMetadata) -> FungibleToken:
    """Rescale a typed-in amount to the contract's precision after checking its symbol."""

    if token.symbol.upper() != metadata.symbol.upper():
        raise ValueError(
            f"Token symbol '{token.symbol}' does not match the contract's symbol '{metadata.symbol}'"
        )
    excess = token.decimals - metadata.decimals
    if excess > 0 and token.amount % 10**excess == 0:
        return FungibleToken(amount=token.amount // 10**excess, decimals=metadata.decimals, symbol=metadata.symbol)
    if excess > 0:
        raise ValueError(
            f"{token} has more than {metadata.decimals} decimal places allowed by the contract"
        )
    scale = 10 ** (metadata.decimals - token.decimals)
    return FungibleToken(amount=token.amount * scale, decimals=metadata.decimals, symbol=metadata.symbol)
