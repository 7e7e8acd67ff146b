"""Configuration — distribution configs from YAML, process settings from env.

The YAML file is keyed by network name:

    testnet:
      distributions:
        - name: ZWAP
          reward_token_address_hex: "0x..."
          distributor_address_hex: "0x..."
          developer_address: "zil1..."
          redirect_to_developer: ["zil1..."]   # optional
          emission_info: {...}
          incentivized_pools: {"zil1...": 3}

An invalid configuration is fatal at load time: the engine refuses to
run rather than compute wrong distributions.

Environment (optionally loaded from ``.env`` via python-dotenv):

    ZAPDIST_CONFIG_FILE     path to the YAML file (default config/config.yml)
    ZAPDIST_NETWORK         testnet | mainnet (default testnet)
    ZAPDIST_DATABASE_PATH   SQLite file (default data/distributions.sqlite3)
    ZAPDIST_RUN_GENERATE    true/t/1 enables epoch generation
    ZAPDIST_LOG_LEVEL       logging level name (default INFO)
    ZAPDIST_ADDRESS_HRP     bech32 prefix (default zil)
    SEPOLIA_RPC_URL         RPC endpoint for root anchoring
    PRIVATE_KEY             signing key for root anchoring
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv

from zapdist.compensation.rounding import ALLOCATION_CONTEXT
from zapdist.crypto.address import DEFAULT_HRP, decode_text_address
from zapdist.errors import AddressDecodeError, ConfigError
from zapdist.models.emission import DistributionConfig, EmissionConfig


NETWORKS = ("testnet", "mainnet")
DEFAULT_CONFIG_FILE = Path("config") / "config.yml"
DEFAULT_DATABASE_PATH = Path("data") / "distributions.sqlite3"

_ENABLED_VALUES = ("true", "t", "1")


def var_enabled(value: Optional[str]) -> bool:
    """Interpret a boolean-ish environment value."""
    return value is not None and value.strip().lower() in _ENABLED_VALUES


# ----------------------------------------------------------------------
# Process settings
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    """Process-level settings resolved from the environment."""
    config_file: Path = DEFAULT_CONFIG_FILE
    network: str = "testnet"
    database_path: Path = DEFAULT_DATABASE_PATH
    run_generate: bool = False
    log_level: str = "INFO"
    address_hrp: str = DEFAULT_HRP
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        dotenv_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Settings:
        """Build settings from ``environ`` (default ``os.environ``).

        If ``dotenv_path`` exists it is loaded first without overriding
        variables that are already set.
        """
        if dotenv_path is not None and Path(dotenv_path).is_file():
            load_dotenv(dotenv_path=dotenv_path, override=False)
        env = os.environ if environ is None else environ

        network = env.get("ZAPDIST_NETWORK", "testnet").strip().lower()
        if network not in NETWORKS:
            raise ConfigError(
                f"ZAPDIST_NETWORK must be one of {', '.join(NETWORKS)}, got {network!r}"
            )
        return cls(
            config_file=Path(env.get("ZAPDIST_CONFIG_FILE", str(DEFAULT_CONFIG_FILE))),
            network=network,
            database_path=Path(env.get("ZAPDIST_DATABASE_PATH", str(DEFAULT_DATABASE_PATH))),
            run_generate=var_enabled(env.get("ZAPDIST_RUN_GENERATE")),
            log_level=env.get("ZAPDIST_LOG_LEVEL", "INFO"),
            address_hrp=env.get("ZAPDIST_ADDRESS_HRP", DEFAULT_HRP),
            rpc_url=env.get("SEPOLIA_RPC_URL") or None,
            private_key=env.get("PRIVATE_KEY") or env.get("SEPOLIA_PRIVATE_KEY") or None,
        )


# ----------------------------------------------------------------------
# Distribution configs
# ----------------------------------------------------------------------

def load_distribution_configs(
    path: Path,
    network: str,
    hrp: str = DEFAULT_HRP,
) -> Tuple[DistributionConfig, ...]:
    """Load and validate every distribution configured for ``network``.

    Raises:
        ConfigError: the file is missing or unreadable, the network is
            unknown, or any distribution fails validation.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(data, dict) or network not in data:
        raise ConfigError(f"Network {network!r} not found in {path}")
    section = data[network] or {}
    entries = section.get("distributions") or []
    if not isinstance(entries, list):
        raise ConfigError(f"{network}.distributions must be a list")

    configs = tuple(
        parse_distribution_config(entry, hrp, label=f"{network}.distributions[{i}]")
        for i, entry in enumerate(entries)
    )
    seen = set()
    for config in configs:
        if config.distributor_address_hex in seen:
            raise ConfigError(
                f"Duplicate distributor address: {config.distributor_address_hex}"
            )
        seen.add(config.distributor_address_hex)
    return configs


def parse_distribution_config(
    raw: Mapping[str, Any],
    hrp: str = DEFAULT_HRP,
    label: str = "distribution",
) -> DistributionConfig:
    """Build one validated DistributionConfig from its YAML mapping."""
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{label}: expected a mapping")

    emission = _parse_emission(_require(raw, "emission_info", label), f"{label}.emission_info")
    problems = emission.validate()
    if problems:
        raise ConfigError(f"{label}: " + "; ".join(problems))

    developer = str(_require(raw, "developer_address", label))
    _check_address(developer, hrp, f"{label}.developer_address")
    redirect = [str(a) for a in raw.get("redirect_to_developer") or []]
    for address in redirect:
        _check_address(address, hrp, f"{label}.redirect_to_developer")

    distributor = str(_require(raw, "distributor_address_hex", label))
    _check_address(distributor, hrp, f"{label}.distributor_address_hex")

    pools: Dict[str, int] = {}
    for pool, weight in (raw.get("incentivized_pools") or {}).items():
        if isinstance(weight, bool) or not isinstance(weight, int) or weight <= 0:
            raise ConfigError(f"{label}.incentivized_pools[{pool}]: weight must be a positive integer")
        pools[str(pool)] = weight

    return DistributionConfig(
        name=str(_require(raw, "name", label)),
        reward_token_address_hex=str(_require(raw, "reward_token_address_hex", label)),
        distributor_address_hex=distributor,
        developer_address=developer,
        emission=emission,
        incentivized_pools=pools,
        redirect_to_developer=frozenset(redirect),
    )


def _parse_emission(raw: Any, label: str) -> EmissionConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{label}: expected a mapping")
    cutoff = raw.get("retroactive_distribution_cutoff_time")
    return EmissionConfig(
        epoch_period=_integer(raw, "epoch_period", label),
        tokens_per_epoch=_token_amount(raw, "tokens_per_epoch", label),
        tokens_for_retroactive_distribution=_token_amount(
            raw, "tokens_for_retroactive_distribution", label, default=0
        ),
        retroactive_distribution_cutoff_time=(
            None if cutoff is None
            else _integer(raw, "retroactive_distribution_cutoff_time", label)
        ),
        distribution_start_time=_integer(raw, "distribution_start_time", label),
        total_number_of_epochs=_integer(raw, "total_number_of_epochs", label),
        initial_epoch_number=_integer(raw, "initial_epoch_number", label, default=0),
        developer_token_ratio_bps=_integer(raw, "developer_token_ratio_bps", label, default=0),
        trader_token_ratio_bps=_integer(raw, "trader_token_ratio_bps", label, default=0),
    )


def _require(raw: Mapping[str, Any], key: str, label: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise ConfigError(f"{label}: missing required field {key!r}")
    return value


def _integer(raw: Mapping[str, Any], key: str, label: str, default: Optional[int] = None) -> int:
    value = raw.get(key, default)
    if value is None:
        raise ConfigError(f"{label}: missing required field {key!r}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{label}.{key}: expected an integer, got {value!r}")
    return value


def _token_amount(
    raw: Mapping[str, Any],
    key: str,
    label: str,
    default: Optional[int] = None,
) -> Decimal:
    """Parse a whole token amount in smallest units, normalised to scale 0."""
    value = raw.get(key, default)
    if value is None:
        raise ConfigError(f"{label}: missing required field {key!r}")
    if isinstance(value, (bool, float)):
        raise ConfigError(f"{label}.{key}: write amounts as integers or strings, got {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigError(f"{label}.{key}: not a decimal: {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise ConfigError(f"{label}.{key}: must be a non-negative amount, got {value!r}")
    if amount != amount.to_integral_value():
        raise ConfigError(f"{label}.{key}: must be a whole number of smallest units, got {value!r}")
    return amount.quantize(Decimal(1), context=ALLOCATION_CONTEXT)


def _check_address(address: str, hrp: str, label: str) -> None:
    try:
        decode_text_address(address, hrp)
    except AddressDecodeError as exc:
        raise ConfigError(f"{label}: {exc}") from exc


def configs_by_distributor(configs: Iterable[DistributionConfig]) -> Dict[str, DistributionConfig]:
    return {c.distributor_address_hex: c for c in configs}
