"""Ledger entities and their serialization helpers."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, TypeVar, get_type_hints

from chainledger.ledger.numeric import ZERO, format_decimal


class StakingAction(str, Enum):
    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"

    @property
    def count_delta(self) -> int:
        return 1 if self is StakingAction.STAKE else -1


E = TypeVar("E", bound="Entity")


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format_decimal(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _decode(hint: Any, value: Any) -> Any:
    if value is None:
        return None
    if hint is Decimal:
        return Decimal(value)
    if isinstance(hint, type) and issubclass(hint, Enum):
        return hint(value)
    return value


class Entity:
    """Mixin for frozen dataclass entities stored through an EntityStore."""

    # Fields the in-memory store keeps secondary indexes for.
    indexed_fields: ClassVar[tuple[str, ...]] = ()

    @property
    def id(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: _encode(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]
        data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls: type[E], data: dict[str, Any]) -> E:
        """Inverse of to_dict; unknown keys (such as `id`) are ignored."""
        hints = get_type_hints(cls)
        kwargs = {
            f.name: _decode(hints[f.name], data[f.name])
            for f in fields(cls)  # type: ignore[arg-type]
            if f.name in data
        }
        return cls(**kwargs)


@dataclass(frozen=True)
class Position(Entity):
    """Balance and cost basis of one account in one asset."""

    indexed_fields: ClassVar[tuple[str, ...]] = ("asset", "account")

    asset: str
    account: str
    balance: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_sales: Decimal = ZERO
    last_price: Decimal = ZERO
    last_market_cap: Decimal = ZERO

    @staticmethod
    def make_id(asset: str, account: str) -> str:
        return f"{asset}-{account}"

    @property
    def id(self) -> str:
        return self.make_id(self.asset, self.account)


@dataclass(frozen=True)
class PositionSnapshot(Entity):
    """Point-in-time balance record written after every transfer and trade."""

    indexed_fields: ClassVar[tuple[str, ...]] = ("account",)

    transaction_hash: str
    log_index: int
    asset: str
    account: str
    balance: Decimal
    price: Decimal
    market_cap: Decimal
    timestamp: int
    block_number: int

    @property
    def key(self) -> tuple[str, int, str]:
        return (self.transaction_hash, self.log_index, self.account)

    @property
    def id(self) -> str:
        return "-".join(str(part) for part in self.key)


@dataclass(frozen=True)
class AssetPrice(Entity):
    """Latest bonding-curve price of an asset, in ETH per token."""

    asset: str
    price: Decimal
    token_supply: Decimal
    market_cap: Decimal
    curve_multiplier: Decimal
    updated_at: int

    @property
    def id(self) -> str:
        return self.asset


@dataclass(frozen=True)
class PriceSnapshot(Entity):
    indexed_fields: ClassVar[tuple[str, ...]] = ("asset",)

    transaction_hash: str
    log_index: int
    asset: str
    price: Decimal
    token_supply: Decimal
    curve_multiplier: Decimal
    timestamp: int

    @property
    def id(self) -> str:
        return f"{self.transaction_hash}-{self.log_index}"


@dataclass(frozen=True)
class StakeRecord(Entity):
    """An actively staked unit."""

    indexed_fields: ClassVar[tuple[str, ...]] = ("owner",)

    unit_id: str
    owner: str
    stake_start_time: int

    @property
    def id(self) -> str:
        return self.unit_id


@dataclass(frozen=True)
class StakingLogEntry(Entity):
    """Append-only history of stake and unstake actions."""

    indexed_fields: ClassVar[tuple[str, ...]] = ("account_id",)

    account_id: str
    kind: StakingAction
    unit_id: str
    timestamp: int
    block_number: int
    log_index: int
    transaction_hash: str = ""

    @property
    def key(self) -> tuple[int, int, str]:
        return (self.block_number, self.log_index, self.unit_id)

    @property
    def id(self) -> str:
        return "-".join(str(part) for part in self.key)


@dataclass(frozen=True)
class RewardState(Entity):
    """Per-account accrual state."""

    account: str
    last_update_timestamp: int
    points_at_last_update: Decimal = ZERO
    current_rate_per_second: Decimal = ZERO
    bonus_tier: int = 0
    active_unit_count: int = 0
    total_units_ever_staked: int = 0

    @property
    def id(self) -> str:
        return self.account

    def points_at(self, timestamp: int) -> Decimal:
        """Points including continuous accrual since the last update."""
        elapsed = max(0, timestamp - self.last_update_timestamp)
        return self.points_at_last_update + Decimal(elapsed) * self.current_rate_per_second


ENTITY_TYPES: dict[str, type[Entity]] = {
    entity_type.__name__: entity_type
    for entity_type in (
        Position,
        PositionSnapshot,
        AssetPrice,
        PriceSnapshot,
        StakeRecord,
        StakingLogEntry,
        RewardState,
    )
}
