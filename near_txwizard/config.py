"""Shared configuration loader for near-txwizard."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".near-txwizard.yaml"
DEFAULT_CREDENTIALS_HOME = Path.home() / ".near-credentials"

ENV_API_KEY = "NEAR_TXWIZARD_API_KEY"
ENV_CREDENTIALS_HOME = "NEAR_TXWIZARD_CREDENTIALS_HOME"
ENV_RPC_URL_PREFIX = "NEAR_TXWIZARD_RPC_URL_"

BUILTIN_NETWORKS: dict[str, dict[str, Any]] = {
    "mainnet": {
        "rpc_url": "https://archival-rpc.mainnet.near.org",
        "explorer_transaction_url": "https://explorer.near.org/transactions/",
    },
    "testnet": {
        "rpc_url": "https://archival-rpc.testnet.near.org",
        "explorer_transaction_url": "https://explorer.testnet.near.org/transactions/",
    },
}


@dataclass
class NetworkConfig:
    """Connection details for a single NEAR network."""

    network_name: str
    rpc_url: str
    api_key: str | None = None
    explorer_transaction_url: str | None = None
    client: Any = field(default=None, repr=False, compare=False)

    def json_rpc_client(self) -> Any:
        """Return the JSON-RPC client bound to this network, creating it on first use."""

        if self.client is None:
            from .rpc_client import NearRPCClient

            self.client = NearRPCClient(self)
        return self.client

    def transaction_url(self, transaction_hash: str) -> str | None:
        if not self.explorer_transaction_url:
            return None
        return f"{self.explorer_transaction_url}{transaction_hash}"


@dataclass(frozen=True)
class GlobalContext:
    """Values shared by every stage of every command family."""

    networks: Mapping[str, NetworkConfig]
    credentials_home: Path = DEFAULT_CREDENTIALS_HOME

    def network(self, name: str) -> NetworkConfig:
        try:
            return self.networks[name]
        except KeyError as exc:
            known = ", ".join(sorted(self.networks)) or "none"
            raise ConfigurationError(f"Unknown network '{name}' (configured: {known})") from exc


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'networks' section")
    return loaded


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _check_url(raw: str, *, source: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC URL in {source}: {raw}")
    return raw


def load_global_context(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> GlobalContext:
    """Load network definitions from the built-in table, optional YAML and the environment."""

    env_map = os.environ if env is None else env
    path = Path(config_path).expanduser() if config_path is not None else DEFAULT_CONFIG_PATH

    file_config = _load_config_file(path, required=config_path is not None)
    networks_section = file_config.get("networks", {}) or {}
    if not isinstance(networks_section, dict):
        raise ConfigurationError(f"Expected 'networks' to be a mapping in {path}")

    merged: dict[str, dict[str, Any]] = {name: dict(values) for name, values in BUILTIN_NETWORKS.items()}
    for name, values in networks_section.items():
        if not isinstance(values, dict):
            raise ConfigurationError(f"Expected networks.{name} to be a mapping in {path}")
        merged.setdefault(str(name), {}).update(values)

    env_api_key = env_map.get(ENV_API_KEY)
    networks: dict[str, NetworkConfig] = {}
    for name, values in merged.items():
        env_url = env_map.get(f"{ENV_RPC_URL_PREFIX}{name.upper()}")
        rpc_url = _first_value(env_url, values.get("rpc_url"))
        if not rpc_url:
            raise ConfigurationError(f"Network '{name}' in {path} has no rpc_url")
        source = "environment" if env_url else f"{path} networks.{name}.rpc_url"
        networks[name] = NetworkConfig(
            network_name=name,
            rpc_url=_check_url(str(rpc_url), source=source),
            api_key=_first_value(env_api_key, values.get("api_key")),
            explorer_transaction_url=values.get("explorer_transaction_url"),
        )

    credentials_home = Path(
        _first_value(
            env_map.get(ENV_CREDENTIALS_HOME),
            file_config.get("credentials_home"),
            default=DEFAULT_CREDENTIALS_HOME,
        )
    ).expanduser()

    return GlobalContext(networks=networks, credentials_home=credentials_home)
