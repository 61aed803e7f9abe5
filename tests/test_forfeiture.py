"""Tests for the counterfactual bonus replay."""

from decimal import Decimal

from chainledger.ledger.entities import StakeRecord, StakingAction, StakingLogEntry
from chainledger.ledger.forfeiture import ForfeitureReplayEngine

ALICE = "0xalice"
BOB = "0xbob"


def entry(
    kind: StakingAction,
    unit_id: str,
    timestamp: int,
    account: str = ALICE,
    log_index: int = 0,
) -> StakingLogEntry:
    return StakingLogEntry(
        account_id=account,
        kind=kind,
        unit_id=unit_id,
        timestamp=timestamp,
        block_number=timestamp,
        log_index=log_index,
    )


STAKE = StakingAction.STAKE
UNSTAKE = StakingAction.UNSTAKE


def test_single_unit_loses_base_only() -> None:
    engine = ForfeitureReplayEngine()
    record = StakeRecord(unit_id="1", owner=ALICE, stake_start_time=1_000)
    history = [entry(STAKE, "1", 1_000)]

    assert engine.base_lost(record, 1_500) == Decimal("100")
    assert engine.bonus_lost(record, history, 1_500) == Decimal("0")


def test_bonus_lost_when_second_unit_joins() -> None:
    engine = ForfeitureReplayEngine()
    record = StakeRecord(unit_id="a", owner=ALICE, stake_start_time=0)
    history = [entry(STAKE, "a", 0), entry(STAKE, "b", 100)]

    # [0, 100): alone, no bonus. [100, 200): pair at 15% -> 100 * 0.2 * 0.15
    assert engine.bonus_lost(record, history, 200) == Decimal("3")


def test_count_before_stake_start_is_folded() -> None:
    engine = ForfeitureReplayEngine()
    history = [
        entry(STAKE, "1", 0),
        entry(STAKE, "2", 0, log_index=1),
        entry(STAKE, "3", 0, log_index=2),
        entry(STAKE, "4", 0, log_index=3),
        entry(STAKE, "9", 5),
        entry(UNSTAKE, "9", 8),
        entry(STAKE, "5", 10),
    ]
    record = StakeRecord(unit_id="5", owner=ALICE, stake_start_time=10)

    # five units from t=10: 20% with, 15% without -> 100 * 0.2 * 0.05
    assert engine.bonus_lost(record, history, 110) == Decimal("1")


def test_other_unit_leaving_midway_changes_tier() -> None:
    engine = ForfeitureReplayEngine()
    history = [
        entry(STAKE, "a", 0),
        entry(STAKE, "b", 0, log_index=1),
        entry(UNSTAKE, "a", 50),
    ]
    record = StakeRecord(unit_id="b", owner=ALICE, stake_start_time=0)

    # Own stake entry is skipped; "a" at the same timestamp still counts.
    # [0, 50): 2 units -> 50 * 0.2 * 0.15 = 1.5. [50, 150): alone -> 0.
    assert engine.bonus_lost(record, history, 150) == Decimal("1.5")


def test_entries_of_other_accounts_are_ignored() -> None:
    engine = ForfeitureReplayEngine()
    history = [
        entry(STAKE, "a", 0),
        entry(STAKE, "x", 10, account=BOB),
        entry(STAKE, "y", 20, account=BOB),
    ]
    record = StakeRecord(unit_id="a", owner=ALICE, stake_start_time=0)

    assert engine.bonus_lost(record, history, 100) == Decimal("0")


def test_unsorted_history_is_replayed_in_timestamp_order() -> None:
    engine = ForfeitureReplayEngine()
    record = StakeRecord(unit_id="a", owner=ALICE, stake_start_time=0)
    history = [
        entry(STAKE, "a", 0),
        entry(UNSTAKE, "b", 300),
        entry(STAKE, "b", 100),
    ]

    # pair from 100 to 300 -> 200 * 0.2 * 0.15
    assert engine.bonus_lost(record, history, 400) == Decimal("6")


def test_zero_length_lifetime_forfeits_nothing() -> None:
    engine = ForfeitureReplayEngine()
    record = StakeRecord(unit_id="a", owner=ALICE, stake_start_time=50)
    history = [entry(STAKE, "b", 10), entry(STAKE, "a", 50)]

    assert engine.base_lost(record, 50) == Decimal("0")
    assert engine.bonus_lost(record, history, 50) == Decimal("0")
