"""Shared configuration loader for the Tempo concurrent payment tooling."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".tempo-concurrent.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None

DEFAULT_RPC_URL = "https://rpc.testnet.tempo.xyz"
DEFAULT_EXPLORER_URL = "https://explore.tempo.xyz"
DEFAULT_CHAIN_ID = 42429
DEFAULT_TOKEN = "AlphaUSD"
DEFAULT_TOKEN_ALIASES = {"AlphaUSD": "0x20c0000000000000000000000000000000000001"}


@dataclass
class NetworkConfig:
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    explorer_url: str = DEFAULT_EXPLORER_URL


@dataclass
class TokenConfig:
    default: str = DEFAULT_TOKEN
    aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TOKEN_ALIASES))
    decimals: int = 6

    @property
    def fee_token(self) -> str | None:
        return self.aliases.get(self.default)


@dataclass
class AdvancedConfig:
    """Timing and batching knobs. Durations are in seconds."""

    confirmations: int = 1
    timeout: float = 30.0
    poll_interval: float = 1.0
    rpc_timeout: float = 30.0
    concurrent_chunk_size: int = 50
    concurrent_chunk_delay: float = 0.5


@dataclass
class TempoConfig:
    """Configuration container for the Tempo RPC connection and batch engine."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    tokens: TokenConfig = field(default_factory=TokenConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    wallet_address: str | None = None


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


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
        raise ConfigurationError(f"Expected {path} to contain a YAML mapping")
    return loaded


def _section(file_config: Mapping[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _coerce_int(raw: Any, *, source: str) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid integer in {source}: {raw}") from exc


def _coerce_float(raw: Any, *, source: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number in {source}: {raw}") from exc


def _millis(raw: Any, *, source: str) -> float | None:
    value = _coerce_float(raw, source=source)
    return value / 1000 if value is not None else None


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _validate_url(raw: str, *, source: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL in {source}: {raw}")
    return raw


def load_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> TempoConfig:
    """Load configuration from overrides, ``TEMPO_*`` variables and optional YAML.

    Precedence, highest first: *overrides*, environment, the YAML file, then
    built-in defaults. Durations coming from the environment are milliseconds
    (``TEMPO_TIMEOUT=30000``); YAML and overrides use seconds.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    network_section = _section(file_config, "network", path)
    wallet_section = _section(file_config, "wallet", path)
    tokens_section = _section(file_config, "tokens", path)
    advanced_section = _section(file_config, "advanced", path)

    override_map = dict(overrides or {})

    rpc_url = _first_value(
        override_map.get("rpc_url"),
        env_map.get("TEMPO_RPC_URL") or None,
        network_section.get("rpc_url"),
        DEFAULT_RPC_URL,
    )
    network = NetworkConfig(
        rpc_url=_validate_url(str(rpc_url), source="rpc_url"),
        chain_id=_first_value(
            _coerce_int(override_map.get("chain_id"), source="overrides"),
            _coerce_int(env_map.get("TEMPO_CHAIN_ID"), source="TEMPO_CHAIN_ID"),
            _coerce_int(network_section.get("chain_id"), source=f"{path} network.chain_id"),
            DEFAULT_CHAIN_ID,
        ),
        explorer_url=_first_value(
            override_map.get("explorer_url"),
            env_map.get("TEMPO_EXPLORER_URL") or None,
            network_section.get("explorer_url"),
            DEFAULT_EXPLORER_URL,
        ),
    )

    aliases = dict(DEFAULT_TOKEN_ALIASES)
    file_aliases = tokens_section.get("aliases") or {}
    if not isinstance(file_aliases, dict):
        raise ConfigurationError(f"Expected 'tokens.aliases' to be a mapping in {path}")
    aliases.update({str(k): str(v) for k, v in file_aliases.items()})
    if env_map.get("TEMPO_ALPHAUSD_ADDRESS"):
        aliases["AlphaUSD"] = env_map["TEMPO_ALPHAUSD_ADDRESS"]
    tokens = TokenConfig(
        default=_first_value(
            override_map.get("default_token"),
            env_map.get("TEMPO_DEFAULT_TOKEN") or None,
            tokens_section.get("default"),
            DEFAULT_TOKEN,
        ),
        aliases=aliases,
        decimals=_first_value(
            _coerce_int(tokens_section.get("decimals"), source=f"{path} tokens.decimals"),
            6,
        ),
    )

    defaults = AdvancedConfig()
    advanced = AdvancedConfig(
        confirmations=_first_value(
            _coerce_int(override_map.get("confirmations"), source="overrides"),
            _coerce_int(env_map.get("TEMPO_CONFIRMATIONS"), source="TEMPO_CONFIRMATIONS"),
            _coerce_int(advanced_section.get("confirmations"), source=f"{path} advanced.confirmations"),
            defaults.confirmations,
        ),
        timeout=_first_value(
            _coerce_float(override_map.get("timeout"), source="overrides"),
            _millis(env_map.get("TEMPO_TIMEOUT"), source="TEMPO_TIMEOUT"),
            _coerce_float(advanced_section.get("timeout"), source=f"{path} advanced.timeout"),
            defaults.timeout,
        ),
        poll_interval=_first_value(
            _coerce_float(override_map.get("poll_interval"), source="overrides"),
            _coerce_float(advanced_section.get("poll_interval"), source=f"{path} advanced.poll_interval"),
            defaults.poll_interval,
        ),
        rpc_timeout=_first_value(
            _coerce_float(advanced_section.get("rpc_timeout"), source=f"{path} advanced.rpc_timeout"),
            defaults.rpc_timeout,
        ),
        concurrent_chunk_size=_first_value(
            _coerce_int(override_map.get("concurrent_chunk_size"), source="overrides"),
            _coerce_int(
                env_map.get("TEMPO_CONCURRENT_CHUNK_SIZE"), source="TEMPO_CONCURRENT_CHUNK_SIZE"
            ),
            _coerce_int(
                advanced_section.get("concurrent_chunk_size"),
                source=f"{path} advanced.concurrent_chunk_size",
            ),
            defaults.concurrent_chunk_size,
        ),
        concurrent_chunk_delay=_first_value(
            _coerce_float(override_map.get("concurrent_chunk_delay"), source="overrides"),
            _millis(
                env_map.get("TEMPO_CONCURRENT_CHUNK_DELAY"), source="TEMPO_CONCURRENT_CHUNK_DELAY"
            ),
            _coerce_float(
                advanced_section.get("concurrent_chunk_delay"),
                source=f"{path} advanced.concurrent_chunk_delay",
            ),
            defaults.concurrent_chunk_delay,
        ),
    )
    if advanced.concurrent_chunk_size < 1:
        raise ConfigurationError("concurrent_chunk_size must be at least 1")
    if advanced.concurrent_chunk_delay < 0:
        raise ConfigurationError("concurrent_chunk_delay cannot be negative")

    wallet_address = _first_value(
        override_map.get("wallet_address"),
        env_map.get("TEMPO_WALLET_ADDRESS") or None,
        wallet_section.get("address"),
    )

    return TempoConfig(
        network=network,
        tokens=tokens,
        advanced=advanced,
        wallet_address=wallet_address,
    )
