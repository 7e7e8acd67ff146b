"""Tests for configuration loading — invalid configs fail at load time."""

import pytest
import yaml
from decimal import Decimal
from pathlib import Path

from zapdist.config import (
    Settings,
    load_distribution_configs,
    parse_distribution_config,
    var_enabled,
)
from zapdist.errors import ConfigError


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def _entry(**overrides) -> dict:
    entry = {
        "name": "ZWAP",
        "reward_token_address_hex": "0x" + "0f" * 20,
        "distributor_address_hex": "0x" + "ee" * 20,
        "developer_address": "0x" + "dd" * 20,
        "emission_info": {
            "epoch_period": 604800,
            "tokens_per_epoch": "6250000000000000",
            "tokens_for_retroactive_distribution": "50000000000000000",
            "retroactive_distribution_cutoff_time": 1610964000,
            "distribution_start_time": 1612339200,
            "total_number_of_epochs": 152,
            "initial_epoch_number": 1,
            "developer_token_ratio_bps": 1500,
            "trader_token_ratio_bps": 2000,
        },
        "incentivized_pools": {"0x" + "aa" * 20: 3},
    }
    entry.update(overrides)
    return entry


def _emission(**overrides) -> dict:
    emission = dict(_entry()["emission_info"])
    emission.update(overrides)
    return emission


class TestLoadDistributionConfigs:
    def test_shipped_config_loads(self) -> None:
        for network in ("testnet", "mainnet"):
            configs = load_distribution_configs(CONFIG_DIR / "config.yml", network)
            assert configs
            for config in configs:
                assert config.emission.validate() == []

    def test_loads_network_section(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({"testnet": {"distributions": [_entry()]}}))
        [config] = load_distribution_configs(path, "testnet")
        assert config.name == "ZWAP"
        assert config.emission.tokens_per_epoch == Decimal("6250000000000000")
        assert config.emission.tokens_per_epoch.as_tuple().exponent == 0
        assert config.incentivized_pools == {"0x" + "aa" * 20: 3}

    def test_missing_network(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({"testnet": {"distributions": []}}))
        with pytest.raises(ConfigError):
            load_distribution_configs(path, "mainnet")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_distribution_configs(tmp_path / "absent.yml", "testnet")

    def test_duplicate_distributor(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({"testnet": {"distributions": [_entry(), _entry()]}}))
        with pytest.raises(ConfigError):
            load_distribution_configs(path, "testnet")


class TestValidation:
    def test_missing_field(self) -> None:
        entry = _entry()
        del entry["developer_address"]
        with pytest.raises(ConfigError):
            parse_distribution_config(entry)

    def test_zero_tokens_per_epoch(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(emission_info=_emission(tokens_per_epoch="0")))

    def test_unparsable_decimal(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(emission_info=_emission(tokens_per_epoch="lots")))

    def test_float_amount_rejected(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(emission_info=_emission(tokens_per_epoch=1.5)))

    def test_fractional_amount_rejected(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(emission_info=_emission(tokens_per_epoch="10.5")))

    def test_exponent_amount_normalised(self) -> None:
        config = parse_distribution_config(
            _entry(emission_info=_emission(tokens_per_epoch="6.25E+15"))
        )
        assert config.emission.tokens_per_epoch.as_tuple().exponent == 0

    def test_large_amount_normalised(self) -> None:
        config = parse_distribution_config(
            _entry(emission_info=_emission(tokens_per_epoch=str(10**30)))
        )
        assert config.emission.tokens_per_epoch == Decimal(10**30)
        assert config.emission.tokens_per_epoch.as_tuple().exponent == 0

    def test_bad_bps(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(
                _entry(emission_info=_emission(developer_token_ratio_bps=20000))
            )

    def test_retroactive_without_cutoff(self) -> None:
        emission = _emission()
        del emission["retroactive_distribution_cutoff_time"]
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(emission_info=emission))

    def test_no_retroactive_epoch(self) -> None:
        emission = _emission(initial_epoch_number=0, tokens_for_retroactive_distribution="0")
        del emission["retroactive_distribution_cutoff_time"]
        config = parse_distribution_config(_entry(emission_info=emission))
        assert not config.emission.has_retroactive_epoch

    def test_bad_developer_address(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(developer_address="zil1nope"))

    def test_bad_redirect_address(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(redirect_to_developer=["0x1234"]))

    def test_bad_pool_weight(self) -> None:
        with pytest.raises(ConfigError):
            parse_distribution_config(_entry(incentivized_pools={"0x" + "aa" * 20: 0}))


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings.from_env(environ={})
        assert settings.network == "testnet"
        assert settings.run_generate is False
        assert settings.address_hrp == "zil"
        assert settings.rpc_url is None

    def test_from_environ(self) -> None:
        settings = Settings.from_env(environ={
            "ZAPDIST_NETWORK": "mainnet",
            "ZAPDIST_RUN_GENERATE": "True",
            "ZAPDIST_DATABASE_PATH": "/tmp/x.sqlite3",
            "SEPOLIA_RPC_URL": "http://localhost:8545",
        })
        assert settings.network == "mainnet"
        assert settings.run_generate is True
        assert settings.database_path == Path("/tmp/x.sqlite3")
        assert settings.rpc_url == "http://localhost:8545"

    def test_unknown_network(self) -> None:
        with pytest.raises(ConfigError):
            Settings.from_env(environ={"ZAPDIST_NETWORK": "devnet"})

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ZAPDIST_LOG_LEVEL", "unset")
        monkeypatch.delenv("ZAPDIST_LOG_LEVEL")
        env_file = tmp_path / ".env"
        env_file.write_text("ZAPDIST_LOG_LEVEL=DEBUG\n")
        settings = Settings.from_env(env_file)
        assert settings.log_level == "DEBUG"

    def test_var_enabled(self) -> None:
        assert var_enabled("t")
        assert var_enabled("1")
        assert var_enabled(" TRUE ")
        assert not var_enabled("yes")
        assert not var_enabled(None)
