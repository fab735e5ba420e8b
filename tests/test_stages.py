import pytest

from near_txwizard.commands import transfer
from near_txwizard.ft_properties import ExactAmount, FungibleToken
from near_txwizard.stages import Stage, ValidationError, advance_stage, obtain_value, run_stages
from near_txwizard.units import MAX_GAS_MESSAGE, NearGas, NearToken

FT_FLAGS = {
    "signer": "alice.near",
    "ft_contract": "usdc.near",
    "receiver": "bob.near",
    "amount": "10.000000 USDC",
    "gas": "100 TeraGas",
    "deposit": "1 yoctoNEAR",
}


def test_flags_and_prompts_build_identical_contexts(global_context, scripted_prompter):
    via_flags = run_stages(transfer.TransferContext(global_context), transfer.FT_STAGES, FT_FLAGS, None)

    prompter, _ = scripted_prompter(["alice.near", "usdc.near", "bob.near", "10.000000 USDC", "", "", ""])
    via_prompts = run_stages(transfer.TransferContext(global_context), transfer.FT_STAGES, {}, prompter)

    assert via_flags == via_prompts
    assert via_flags.interacting_with_account_ids == ("usdc.near", "alice.near", "bob.near")
    pending = via_flags.get_prepopulated_transaction.pending_amount
    assert pending.ft_transfer_amount == ExactAmount(FungibleToken(10_000_000, 6, "USDC"))
    assert via_flags.get_prepopulated_transaction.gas == NearGas.from_tgas(100)
    assert via_flags.get_prepopulated_transaction.deposit == NearToken(1)
    assert via_flags.get_prepopulated_transaction.memo is None


def test_prompt_reasks_after_invalid_gas(global_context, scripted_prompter):
    prompter, output = scripted_prompter(
        ["alice.near", "usdc.near", "bob.near", "all", "thanks", "301 TeraGas", "30 Tgas", ""]
    )

    context = run_stages(transfer.TransferContext(global_context), transfer.FT_STAGES, {}, prompter)

    assert f"{MAX_GAS_MESSAGE}. Please try again." in output
    assert context.get_prepopulated_transaction.gas == NearGas.from_tgas(30)
    assert context.get_prepopulated_transaction.memo == "thanks"


def test_invalid_flag_is_fatal(global_context):
    flags = dict(FT_FLAGS, gas="301 TeraGas")

    with pytest.raises(ValidationError) as excinfo:
        run_stages(transfer.TransferContext(global_context), transfer.FT_STAGES, flags, None)

    assert excinfo.value.stage_name == "gas"
    assert MAX_GAS_MESSAGE in str(excinfo.value)


def test_missing_flag_without_prompter_is_reported(global_context):
    flags = dict(FT_FLAGS)
    del flags["receiver"]

    with pytest.raises(ValidationError, match="--receiver: missing required argument"):
        run_stages(transfer.TransferContext(global_context), transfer.FT_STAGES, flags, None)


def test_optional_stage_is_skipped_without_prompter():
    stage = Stage(name="memo", question="memo?", advance=lambda previous, value: value, optional=True)

    assert obtain_value(stage, None, {}, None) is None


def test_invalid_account_id_is_rejected():
    stage = transfer.NEAR_STAGES[0]

    with pytest.raises(ValidationError, match="not a valid account id"):
        advance_stage(stage, None, {"signer": "Alice!"}, None)


def test_select_accepts_menu_number_and_key(global_context, scripted_prompter):
    prompter, output = scripted_prompter(["2", "near"])
    choices = transfer.CURRENCY_CHOICES

    assert prompter.select("Currency?", choices) == "ft"
    assert prompter.select("Currency?", choices) == "near"
    assert "  [1] The transfer is carried out in NEAR tokens" in output


def test_select_falls_back_to_default_on_blank(scripted_prompter):
    prompter, _ = scripted_prompter(["", "9", "1"])

    assert prompter.select("Currency?", transfer.CURRENCY_CHOICES, default="ft") == "ft"
    assert prompter.select("Currency?", transfer.CURRENCY_CHOICES) == "near"
