"""
Configuration management with Pydantic validation.

Loads settings from YAML config file and environment variables.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class LedgerConfig(BaseModel):
    """Position ledger configuration."""

    sentinel_address: str = ZERO_ADDRESS
    dust_threshold: Decimal = Field(default=Decimal("0.001"), gt=0)
    token_decimals: int = Field(default=18, ge=0, le=36)

    @field_validator("sentinel_address")
    @classmethod
    def normalize_sentinel(cls, v: str) -> str:
        return v.strip().lower()


class TierConfig(BaseModel):
    """Single bonus tier bracket."""

    min_units: int = Field(ge=0)
    tier: int = Field(ge=0)
    multiplier: Decimal = Field(ge=1)


def _default_tiers() -> list[TierConfig]:
    return [
        TierConfig(min_units=0, tier=0, multiplier=Decimal("1.00")),
        TierConfig(min_units=2, tier=1, multiplier=Decimal("1.15")),
        TierConfig(min_units=5, tier=2, multiplier=Decimal("1.20")),
        TierConfig(min_units=10, tier=3, multiplier=Decimal("1.50")),
    ]


class RewardsConfig(BaseModel):
    """Staking rewards configuration."""

    # 1 point every 5 seconds for a single unit
    base_rate_per_second: Decimal = Field(default=Decimal("0.2"), gt=0)
    tiers: list[TierConfig] = Field(default_factory=_default_tiers)

    @field_validator("tiers")
    @classmethod
    def validate_tiers(cls, v: list[TierConfig]) -> list[TierConfig]:
        if not v:
            raise ValueError("at least one tier is required")
        if v[0].min_units != 0:
            raise ValueError("first tier must start at min_units=0")
        for prev, cur in zip(v, v[1:]):
            if cur.min_units <= prev.min_units:
                raise ValueError("tiers must be sorted by strictly increasing min_units")
            if cur.multiplier < prev.multiplier:
                raise ValueError("tier multipliers must be non-decreasing")
        return v


class StorageConfig(BaseModel):
    """Storage paths configuration."""

    events_path: str = "./data/events/events.jsonl"
    output_path: str = "./data/state/entities.json"
    logs_path: str = "./logs"


class MonitoringConfig(BaseModel):
    """Monitoring configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    error_log_max_bytes: int = Field(default=5_000_000, ge=100_000, le=50_000_000)
    error_log_backup_count: int = Field(default=3, ge=1, le=20)


class Settings(BaseSettings):
    """Main application settings."""

    chain_id: int = Field(default=1, ge=1)

    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    rewards: RewardsConfig = Field(default_factory=RewardsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "env_nested_delimiter": "__",
        "populate_by_name": True,
    }


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Load settings from YAML config file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file values
    3. Default values
    """
    config_data = {}

    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config.yaml")

    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            config_data = yaml.safe_load(f) or {}

    env_path = config_file.parent / ".env"
    return Settings(**config_data, _env_file=env_path)


def create_default_config(path: str | Path = "config.yaml") -> None:
    """Create a default configuration file."""
    default_config = {
        "chain_id": 1,
        "ledger": {
            "sentinel_address": ZERO_ADDRESS,
            "dust_threshold": "0.001",
            "token_decimals": 18,
        },
        "rewards": {
            "base_rate_per_second": "0.2",
            "tiers": [
                {"min_units": 0, "tier": 0, "multiplier": "1.00"},
                {"min_units": 2, "tier": 1, "multiplier": "1.15"},
                {"min_units": 5, "tier": 2, "multiplier": "1.20"},
                {"min_units": 10, "tier": 3, "multiplier": "1.50"},
            ],
        },
        "storage": {
            "events_path": "./data/events/events.jsonl",
            "output_path": "./data/state/entities.json",
            "logs_path": "./logs",
        },
        "monitoring": {
            "log_level": "INFO",
        },
    }

    with open(path, "w") as f:
        yaml.dump(default_config, f, default_flow_style=False, sort_keys=False)
