from pathlib import Path

import pytest

from near_txwizard.config import (
    ConfigurationError,
    GlobalContext,
    load_global_context,
)


@pytest.fixture(autouse=True)
def isolated_default_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("near_txwizard.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")


def test_builtin_networks_are_available_without_a_file() -> None:
    context = load_global_context(env={})

    assert isinstance(context, GlobalContext)
    assert set(context.networks) == {"mainnet", "testnet"}
    assert context.network("testnet").rpc_url.startswith("https://")


def test_yaml_networks_merge_over_builtins(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        networks:
          testnet:
            rpc_url: https://rpc.testnet.fastnear.com
            api_key: file-key
          localnet:
            rpc_url: http://127.0.0.1:3030
        credentials_home: ~/keys
        """
    )

    context = load_global_context(config_path=config_path, env={})

    testnet = context.network("testnet")
    assert testnet.rpc_url == "https://rpc.testnet.fastnear.com"
    assert testnet.api_key == "file-key"
    assert testnet.explorer_transaction_url == "https://explorer.testnet.near.org/transactions/"
    assert context.network("localnet").explorer_transaction_url is None
    assert context.credentials_home == Path("~/keys").expanduser()


def test_environment_overrides_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("networks:\n  mainnet:\n    api_key: file-key\n")
    env_map = {
        "NEAR_TXWIZARD_RPC_URL_MAINNET": "https://rpc.mainnet.example",
        "NEAR_TXWIZARD_API_KEY": "env-key",
        "NEAR_TXWIZARD_CREDENTIALS_HOME": str(tmp_path / "creds"),
    }

    context = load_global_context(config_path=config_path, env=env_map)

    mainnet = context.network("mainnet")
    assert mainnet.rpc_url == "https://rpc.mainnet.example"
    assert mainnet.api_key == "env-key"
    assert context.credentials_home == tmp_path / "creds"


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_global_context(config_path=tmp_path / "nope.yaml", env={})


def test_invalid_rpc_url_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("networks:\n  testnet:\n    rpc_url: ftp://example\n")

    with pytest.raises(ConfigurationError, match="Invalid RPC URL"):
        load_global_context(config_path=config_path, env={})


def test_unknown_network_lists_configured_ones() -> None:
    context = load_global_context(env={})

    with pytest.raises(ConfigurationError, match="mainnet, testnet"):
        context.network("betanet")


def test_default_path_is_read_when_present(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    default_path = tmp_path / "default.yaml"
    default_path.write_text("networks:\n  testnet:\n    api_key: default-key\n")
    monkeypatch.setattr("near_txwizard.config.DEFAULT_CONFIG_PATH", default_path)

    context = load_global_context(env={})

    assert context.network("testnet").api_key == "default-key"
