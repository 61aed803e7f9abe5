"""Time-weighted staking rewards with tiered bonuses and unstake forfeiture."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Sequence

from chainledger.config.settings import RewardsConfig
from chainledger.ledger.entities import RewardState, StakeRecord, StakingAction, StakingLogEntry
from chainledger.ledger.errors import (
    DuplicateStakeRecord,
    MissingRewardState,
    MissingStakeRecord,
)
from chainledger.ledger.forfeiture import ForfeitureReplayEngine
from chainledger.ledger.numeric import clamp_non_negative
from chainledger.ledger.tiers import DEFAULT_SCHEDULE, TierSchedule


@dataclass(frozen=True)
class LogContext:
    block_number: int
    log_index: int
    transaction_hash: str = ""


@dataclass(frozen=True)
class Forfeiture:
    base: Decimal
    bonus: Decimal

    @property
    def total(self) -> Decimal:
        return self.base + self.bonus


@dataclass(frozen=True)
class RewardUpdate:
    """Writes produced by one stake-side event."""

    state: RewardState
    log_entry: StakingLogEntry
    created_record: StakeRecord | None = None
    removed_record: StakeRecord | None = None
    forfeiture: Forfeiture | None = None


class RewardAccrualLedger:
    """Pure update functions for RewardState, StakeRecord and the staking log."""

    def __init__(self, schedule: TierSchedule = DEFAULT_SCHEDULE) -> None:
        self.schedule = schedule
        self.replay = ForfeitureReplayEngine(schedule)

    @classmethod
    def from_config(cls, config: RewardsConfig) -> "RewardAccrualLedger":
        return cls(TierSchedule.from_config(config))

    def accrue(self, state: RewardState, timestamp: int) -> RewardState:
        """Finalize points earned at the current rate up to `timestamp`."""
        return replace(
            state,
            points_at_last_update=state.points_at(timestamp),
            last_update_timestamp=max(timestamp, state.last_update_timestamp),
        )

    def on_stake(
        self,
        state: RewardState | None,
        record: StakeRecord | None,
        account: str,
        unit_id: str,
        timestamp: int,
        ctx: LogContext,
    ) -> RewardUpdate:
        """Accrue, then add the unit. A unit that is still staked is rejected."""
        if record is not None:
            raise DuplicateStakeRecord(
                "unit is already staked",
                account=account,
                unit_id=unit_id,
                owner=record.owner,
                stake_start_time=record.stake_start_time,
            )
        if state is None:
            state = RewardState(account=account, last_update_timestamp=timestamp)
        state = self.accrue(state, timestamp)
        active = state.active_unit_count + 1
        state = replace(
            state,
            active_unit_count=active,
            total_units_ever_staked=state.total_units_ever_staked + 1,
            bonus_tier=self.schedule.tier_code(active),
            current_rate_per_second=self.schedule.rate(active),
        )
        return RewardUpdate(
            state=state,
            log_entry=self._log_entry(account, StakingAction.STAKE, unit_id, timestamp, ctx),
            created_record=StakeRecord(unit_id=unit_id, owner=account, stake_start_time=timestamp),
        )

    def on_unstake(
        self,
        state: RewardState | None,
        record: StakeRecord | None,
        history: Sequence[StakingLogEntry],
        account: str,
        unit_id: str,
        timestamp: int,
        ctx: LogContext,
    ) -> RewardUpdate:
        """Accrue, forfeit the unit's base and marginal bonus, then drop it."""
        if state is None:
            raise MissingRewardState("unstake for an account with no reward state", account=account)
        if record is None or record.owner != account:
            raise MissingStakeRecord(
                "unit not staked by account",
                account=account,
                unit_id=unit_id,
                owner=record.owner if record else None,
            )
        return self._remove_unit(state, record, history, timestamp, ctx)

    def on_emergency_withdraw(
        self,
        state: RewardState | None,
        record: StakeRecord | None,
        history: Sequence[StakingLogEntry],
        account: str,
        unit_id: str,
        timestamp: int,
        ctx: LogContext,
    ) -> RewardUpdate | None:
        """Same math as on_unstake; an already-absent unit is a no-op (None)."""
        if state is None:
            raise MissingRewardState(
                "emergency withdraw for an account with no reward state", account=account
            )
        if record is None or record.owner != account:
            return None
        return self._remove_unit(state, record, history, timestamp, ctx)

    def forfeiture_for(
        self,
        record: StakeRecord,
        history: Sequence[StakingLogEntry],
        timestamp: int,
    ) -> Forfeiture:
        return Forfeiture(
            base=self.replay.base_lost(record, timestamp),
            bonus=self.replay.bonus_lost(record, history, timestamp),
        )

    def _remove_unit(
        self,
        state: RewardState,
        record: StakeRecord,
        history: Sequence[StakingLogEntry],
        timestamp: int,
        ctx: LogContext,
    ) -> RewardUpdate:
        state = self.accrue(state, timestamp)
        forfeiture = self.forfeiture_for(record, history, timestamp)
        active = max(0, state.active_unit_count - 1)
        state = replace(
            state,
            points_at_last_update=clamp_non_negative(state.points_at_last_update - forfeiture.total),
            active_unit_count=active,
            bonus_tier=self.schedule.tier_code(active),
            current_rate_per_second=self.schedule.rate(active),
        )
        return RewardUpdate(
            state=state,
            log_entry=self._log_entry(
                record.owner, StakingAction.UNSTAKE, record.unit_id, timestamp, ctx
            ),
            removed_record=record,
            forfeiture=forfeiture,
        )

    @staticmethod
    def _log_entry(
        account: str,
        kind: StakingAction,
        unit_id: str,
        timestamp: int,
        ctx: LogContext,
    ) -> StakingLogEntry:
        return StakingLogEntry(
            account_id=account,
            kind=kind,
            unit_id=unit_id,
            timestamp=timestamp,
            block_number=ctx.block_number,
            log_index=ctx.log_index,
            transaction_hash=ctx.transaction_hash,
        )
