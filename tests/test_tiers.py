from decimal import Decimal

import pytest
from pydantic import ValidationError

from chainledger.config.settings import RewardsConfig, TierConfig
from chainledger.ledger.tiers import DEFAULT_SCHEDULE, TierSchedule


def test_rate_table_matches_tier_multipliers() -> None:
    assert DEFAULT_SCHEDULE.rate(0) == Decimal("0")
    assert DEFAULT_SCHEDULE.rate(1) == Decimal("0.2")
    assert DEFAULT_SCHEDULE.rate(2) == Decimal("0.46")
    assert DEFAULT_SCHEDULE.rate(5) == Decimal("1.2")
    assert DEFAULT_SCHEDULE.rate(10) == Decimal("3.0")


@pytest.mark.parametrize(
    ("units", "tier"),
    [(0, 0), (1, 0), (2, 1), (4, 1), (5, 2), (9, 2), (10, 3), (250, 3)],
)
def test_tier_boundaries(units: int, tier: int) -> None:
    assert DEFAULT_SCHEDULE.tier_code(units) == tier


def test_bonus_points_use_additive_part_of_multiplier() -> None:
    assert DEFAULT_SCHEDULE.bonus_points(100, 1) == Decimal("0")
    assert DEFAULT_SCHEDULE.bonus_points(100, 3) == Decimal("3")
    assert DEFAULT_SCHEDULE.bonus_points(100, 7) == Decimal("4")
    assert DEFAULT_SCHEDULE.bonus_points(100, 12) == Decimal("10")


def test_negative_count_maps_to_lowest_tier() -> None:
    assert DEFAULT_SCHEDULE.tier_code(-3) == 0
    assert DEFAULT_SCHEDULE.rate(-3) == Decimal("0")


def test_schedule_from_custom_config() -> None:
    config = RewardsConfig(
        base_rate_per_second=Decimal("1"),
        tiers=[
            TierConfig(min_units=0, tier=0, multiplier=Decimal("1")),
            TierConfig(min_units=3, tier=1, multiplier=Decimal("2")),
        ],
    )
    schedule = TierSchedule.from_config(config)
    assert schedule.rate(2) == Decimal("2")
    assert schedule.rate(3) == Decimal("6")


def test_tier_config_rejects_unsorted_brackets() -> None:
    with pytest.raises(ValidationError):
        RewardsConfig(
            tiers=[
                TierConfig(min_units=0, tier=0, multiplier=Decimal("1")),
                TierConfig(min_units=5, tier=2, multiplier=Decimal("1.2")),
                TierConfig(min_units=2, tier=1, multiplier=Decimal("1.15")),
            ]
        )


def test_tier_config_requires_zero_bracket() -> None:
    with pytest.raises(ValidationError):
        RewardsConfig(tiers=[TierConfig(min_units=1, tier=0, multiplier=Decimal("1"))])
