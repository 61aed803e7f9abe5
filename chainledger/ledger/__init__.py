"""Position and staking-reward ledgers."""

from chainledger.ledger.entities import (
    AssetPrice,
    Position,
    PositionSnapshot,
    PriceSnapshot,
    RewardState,
    StakeRecord,
    StakingAction,
    StakingLogEntry,
)
from chainledger.ledger.errors import (
    DataConsistencyError,
    DuplicateStakeRecord,
    EventDecodeError,
    MissingPosition,
    MissingRewardState,
    MissingStakeRecord,
    NegativeBalance,
    UnknownEventKind,
)
from chainledger.ledger.event_log import ChainEventLog
from chainledger.ledger.events import EventKind, decode_event
from chainledger.ledger.forfeiture import ForfeitureReplayEngine
from chainledger.ledger.positions import PositionLedger
from chainledger.ledger.processor import EventProcessor
from chainledger.ledger.rewards import RewardAccrualLedger
from chainledger.ledger.store import EntityStore, InMemoryEntityStore
from chainledger.ledger.tiers import TierSchedule

__all__ = [
    "AssetPrice",
    "ChainEventLog",
    "DataConsistencyError",
    "DuplicateStakeRecord",
    "EntityStore",
    "EventDecodeError",
    "EventKind",
    "EventProcessor",
    "ForfeitureReplayEngine",
    "InMemoryEntityStore",
    "MissingPosition",
    "MissingRewardState",
    "MissingStakeRecord",
    "NegativeBalance",
    "Position",
    "PositionLedger",
    "PositionSnapshot",
    "PriceSnapshot",
    "RewardAccrualLedger",
    "RewardState",
    "StakeRecord",
    "StakingAction",
    "StakingLogEntry",
    "TierSchedule",
    "UnknownEventKind",
    "decode_event",
]
