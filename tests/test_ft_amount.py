import pytest

from near_txwizard.ft_properties import (
    ExactAmount,
    FtMetadata,
    FungibleToken,
    MaxAmount,
    get_ft_balance,
    normalize_exact_amount,
    parse_ft_transfer_amount,
    resolve_ft_transfer_amount,
)
from near_txwizard.rpc_client import QueryError, RPCError


def test_parse_exact_amount_keeps_written_precision():
    amount = parse_ft_transfer_amount("10.000000 USDC")

    assert amount == ExactAmount(FungibleToken(amount=10_000_000, decimals=6, symbol="USDC"))


def test_parse_all_means_max_amount():
    assert parse_ft_transfer_amount(" ALL ") == MaxAmount()


def test_parse_rejects_amount_without_symbol():
    with pytest.raises(ValueError):
        parse_ft_transfer_amount("10")


def test_resolve_exact_amount_issues_no_query(rpc, network_config):
    token = FungibleToken(amount=5, decimals=0, symbol="USDC")

    resolved = resolve_ft_transfer_amount(ExactAmount(token), network_config, "alice.near", "usdc.near")

    assert resolved is token
    assert rpc.view_calls == []


def test_resolve_max_amount_uses_one_balance_and_one_metadata_query(rpc, network_config, usdc_metadata):
    rpc.views = {"ft_balance_of": "12345678", "ft_metadata": usdc_metadata}

    resolved = resolve_ft_transfer_amount(MaxAmount(), network_config, "alice.near", "usdc.near")

    assert resolved == FungibleToken(amount=12_345_678, decimals=6, symbol="USDC")
    assert str(resolved) == "12.345678 USDC"
    assert rpc.view_count("ft_balance_of") == 1
    assert rpc.view_count("ft_metadata") == 1
    assert rpc.view_calls[0] == ("ft_balance_of", "usdc.near", {"account_id": "alice.near"})


def test_balance_query_failure_names_method_and_network(rpc, network_config):
    rpc.views = {"ft_balance_of": RPCError(-32000, "Server error", name="UNKNOWN_ACCOUNT")}

    with pytest.raises(QueryError) as excinfo:
        get_ft_balance(network_config, "usdc.near", "alice.near")

    message = str(excinfo.value)
    assert "ft_balance_of" in message
    assert "testnet" in message
    assert excinfo.value.contract_id == "usdc.near"


def test_normalize_rescales_to_contract_decimals():
    metadata = FtMetadata(decimals=6, symbol="USDC")

    token = normalize_exact_amount(FungibleToken.from_str("10 usdc"), metadata)

    assert token == FungibleToken(amount=10_000_000, decimals=6, symbol="USDC")


def test_normalize_rejects_symbol_mismatch():
    with pytest.raises(ValueError, match="does not match"):
        normalize_exact_amount(FungibleToken.from_str("10 USDT"), FtMetadata(decimals=6, symbol="USDC"))


def test_normalize_rejects_excess_precision():
    with pytest.raises(ValueError, match="decimal places"):
        normalize_exact_amount(FungibleToken.from_str("1.0000001 USDC"), FtMetadata(decimals=6, symbol="USDC"))


def test_normalize_accepts_trailing_zeros_beyond_precision():
    token = normalize_exact_amount(FungibleToken.from_str("1.50000000 USDC"), FtMetadata(decimals=6, symbol="USDC"))

    assert token.amount == 1_500_000
