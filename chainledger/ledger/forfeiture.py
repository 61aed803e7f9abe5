"""Counterfactual bonus replay for a unit leaving the staking pool.

The bonus multiplier depends on how many units an account has staked at the
same time, and that count moves as other units come and go. To find the bonus
a single unit was responsible for, the account's staking log is replayed over
the unit's lifetime and, for every interval between log entries, the bonus
earned with the unit present is compared against the bonus that would have
been earned without it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from chainledger.ledger.entities import StakeRecord, StakingAction, StakingLogEntry
from chainledger.ledger.numeric import ZERO
from chainledger.ledger.tiers import DEFAULT_SCHEDULE, TierSchedule


class ForfeitureReplayEngine:
    def __init__(self, schedule: TierSchedule = DEFAULT_SCHEDULE) -> None:
        self.schedule = schedule

    def base_lost(self, record: StakeRecord, unstake_timestamp: int) -> Decimal:
        """Flat accrual of the unit over its whole staked lifetime."""
        return self.schedule.base_points(max(0, unstake_timestamp - record.stake_start_time))

    def bonus_lost(
        self,
        record: StakeRecord,
        history: Iterable[StakingLogEntry],
        unstake_timestamp: int,
    ) -> Decimal:
        """Marginal bonus the unit contributed between stake and `unstake_timestamp`.

        `history` is the account's log in write order and must not contain
        the unstake being processed.
        """
        start = record.stake_start_time
        count_at_start = 0
        replay: list[StakingLogEntry] = []
        own_stake_skipped = False
        for entry in history:
            if entry.account_id != record.owner:
                continue
            if entry.timestamp < start:
                count_at_start += entry.kind.count_delta
                continue
            if (
                not own_stake_skipped
                and entry.kind is StakingAction.STAKE
                and entry.unit_id == record.unit_id
                and entry.timestamp == start
            ):
                # already counted by the +1 below
                own_stake_skipped = True
                continue
            replay.append(entry)

        # sorted() is stable, so same-timestamp entries keep log order
        replay = sorted(replay, key=lambda e: e.timestamp)

        current = count_at_start + 1
        last_time = start
        total = ZERO
        for entry in replay:
            total += self._interval_loss(entry.timestamp - last_time, current)
            current += entry.kind.count_delta
            last_time = entry.timestamp
        total += self._interval_loss(unstake_timestamp - last_time, current)
        return total

    def _interval_loss(self, duration: int, current: int) -> Decimal:
        if duration <= 0:
            return ZERO
        with_unit = self.schedule.bonus_points(duration, current)
        without_unit = self.schedule.bonus_points(duration, max(0, current - 1))
        return with_unit - without_unit
