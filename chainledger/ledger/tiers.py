"""Bonus tier table and accrual-rate functions."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from chainledger.config.settings import RewardsConfig, TierConfig
from chainledger.ledger.numeric import ZERO

ONE = Decimal("1")


@dataclass(frozen=True)
class Tier:
    min_units: int
    code: int
    multiplier: Decimal

    @property
    def bonus_rate(self) -> Decimal:
        """Additive part of the multiplier (0.15 for 1.15)."""
        return self.multiplier - ONE


class TierSchedule:
    """Maps an active-unit count to its bonus tier and accrual rate."""

    def __init__(self, tiers: Sequence[Tier], base_rate: Decimal) -> None:
        if not tiers or tiers[0].min_units != 0:
            raise ValueError("tier schedule must start at 0 units")
        self.tiers = tuple(sorted(tiers, key=lambda t: t.min_units))
        self.base_rate = base_rate
        self._thresholds = [t.min_units for t in self.tiers]

    @classmethod
    def from_config(cls, config: RewardsConfig) -> "TierSchedule":
        return cls(
            tiers=[_tier_from_config(t) for t in config.tiers],
            base_rate=config.base_rate_per_second,
        )

    def tier_for(self, active_units: int) -> Tier:
        index = bisect_right(self._thresholds, max(0, active_units)) - 1
        return self.tiers[index]

    def tier_code(self, active_units: int) -> int:
        return self.tier_for(active_units).code

    def rate(self, active_units: int) -> Decimal:
        """Points per second for `active_units` concurrently staked units."""
        if active_units <= 0:
            return ZERO
        return Decimal(active_units) * self.base_rate * self.tier_for(active_units).multiplier

    def base_points(self, duration: int) -> Decimal:
        """Flat accrual of a single unit over `duration` seconds."""
        return Decimal(duration) * self.base_rate

    def bonus_points(self, duration: int, active_units: int) -> Decimal:
        """Bonus-only accrual of a single unit at the tier of `active_units`."""
        return self.base_points(duration) * self.tier_for(active_units).bonus_rate


def _tier_from_config(config: TierConfig) -> Tier:
    return Tier(min_units=config.min_units, code=config.tier, multiplier=config.multiplier)


DEFAULT_SCHEDULE = TierSchedule.from_config(RewardsConfig())
