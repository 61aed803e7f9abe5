from decimal import Decimal
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from chainledger.config.settings import (
    ZERO_ADDRESS,
    LedgerConfig,
    Settings,
    create_default_config,
    load_settings,
)


def test_defaults() -> None:
    settings = Settings()
    assert settings.ledger.sentinel_address == ZERO_ADDRESS
    assert settings.ledger.dust_threshold == Decimal("0.001")
    assert settings.rewards.base_rate_per_second == Decimal("0.2")
    assert [t.min_units for t in settings.rewards.tiers] == [0, 2, 5, 10]


def test_default_config_round_trips(workspace_tmp_path: Path) -> None:
    path = workspace_tmp_path / "config.yaml"
    create_default_config(path)
    settings = load_settings(path)

    assert settings.chain_id == 1
    assert settings.rewards.tiers[3].multiplier == Decimal("1.50")
    assert settings.storage.events_path == "./data/events/events.jsonl"


def test_yaml_overrides(workspace_tmp_path: Path) -> None:
    path = workspace_tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "chain_id": 8453,
                "ledger": {"sentinel_address": "0xDEAD", "dust_threshold": "0.5"},
                "monitoring": {"log_level": "DEBUG"},
            }
        )
    )
    settings = load_settings(path)

    assert settings.chain_id == 8453
    assert settings.ledger.sentinel_address == "0xdead"
    assert settings.ledger.dust_threshold == Decimal("0.5")
    assert settings.monitoring.log_level == "DEBUG"


def test_missing_config_file_uses_defaults(workspace_tmp_path: Path) -> None:
    settings = load_settings(workspace_tmp_path / "absent.yaml")
    assert settings.ledger.token_decimals == 18


def test_environment_overrides_nested_values(
    workspace_tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LEDGER__DUST_THRESHOLD", "0.01")
    settings = load_settings(workspace_tmp_path / "absent.yaml")
    assert settings.ledger.dust_threshold == Decimal("0.01")


def test_non_positive_dust_threshold_rejected() -> None:
    with pytest.raises(ValidationError):
        LedgerConfig(dust_threshold=Decimal("0"))
