"""Ledger error taxonomy."""

from __future__ import annotations


class DataConsistencyError(Exception):
    """An event references state that a well-formed stream would have created.

    The processor logs these and skips the update; they never abort a replay.
    """

    kind = "data_consistency"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.context = context


class MissingPosition(DataConsistencyError):
    kind = "missing_position"


class MissingStakeRecord(DataConsistencyError):
    kind = "missing_stake_record"


class MissingRewardState(DataConsistencyError):
    kind = "missing_reward_state"


class NegativeBalance(DataConsistencyError):
    kind = "negative_balance"


class DuplicateStakeRecord(DataConsistencyError):
    kind = "duplicate_stake_record"


class EventDecodeError(ValueError):
    """Raw event envelope is malformed."""


class UnknownEventKind(EventDecodeError):
    def __init__(self, event_kind: str) -> None:
        self.event_kind = event_kind
        super().__init__(f"Unsupported event kind: {event_kind}")
