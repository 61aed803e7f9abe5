"""Typed chain events and decoding of raw event envelopes."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from chainledger.ledger.errors import EventDecodeError, UnknownEventKind
from chainledger.ledger.numeric import WEI_DECIMALS, from_base_units


class EventKind(str, Enum):
    """All event kinds the ledgers react to."""

    TRANSFER = "Transfer"
    TRADE = "Trade"
    STAKED = "Staked"
    UNSTAKED = "Unstaked"
    EMERGENCY_WITHDRAW = "EmergencyWithdraw"
    PRICE_UPDATE = "PriceUpdate"


@dataclass(frozen=True)
class BlockInfo:
    number: int
    timestamp: int
    hash: str


@dataclass(frozen=True)
class EventEnvelope:
    """Fields common to every chain log."""

    kind: EventKind
    contract_address: str
    block: BlockInfo
    transaction_hash: str
    log_index: int

    @property
    def ordering_key(self) -> tuple[int, int]:
        return (self.block.number, self.log_index)


@dataclass(frozen=True)
class TransferEvent:
    envelope: EventEnvelope
    sender: str
    recipient: str
    value: Decimal


@dataclass(frozen=True)
class TradeEvent:
    envelope: EventEnvelope
    trader: str
    is_buy: bool
    amount: Decimal
    eth_amount: Decimal

    @property
    def token_amount_delta(self) -> Decimal:
        return self.amount if self.is_buy else -self.amount


@dataclass(frozen=True)
class StakedEvent:
    envelope: EventEnvelope
    owner: str
    unit_id: str
    timestamp: int


@dataclass(frozen=True)
class UnstakedEvent:
    envelope: EventEnvelope
    owner: str
    unit_id: str
    timestamp: int


@dataclass(frozen=True)
class EmergencyWithdrawEvent:
    envelope: EventEnvelope
    owner: str
    unit_id: str
    recipient: str

    @property
    def timestamp(self) -> int:
        return self.envelope.block.timestamp


@dataclass(frozen=True)
class PriceUpdateEvent:
    """Bonding-curve price move of the emitting asset."""

    envelope: EventEnvelope
    price: Decimal
    token_supply: Decimal
    curve_multiplier: Decimal

    @property
    def market_cap(self) -> Decimal:
        return self.price * self.token_supply


ChainEvent = (
    TransferEvent
    | TradeEvent
    | StakedEvent
    | UnstakedEvent
    | EmergencyWithdrawEvent
    | PriceUpdateEvent
)


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data or data[key] is None:
        raise EventDecodeError(f"{where} missing required field '{key}'")
    return data[key]


def _address(value: Any) -> str:
    return str(value).strip().lower()


def _int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise EventDecodeError(f"field '{field_name}' is not an integer: {value!r}") from exc


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def _wei(value: Any, field_name: str, decimals: int) -> Decimal:
    try:
        return from_base_units(value, decimals)
    except (TypeError, ValueError) as exc:
        raise EventDecodeError(f"field '{field_name}' is not a base-unit amount: {value!r}") from exc


def decode_envelope(raw: Mapping[str, Any]) -> EventEnvelope:
    kind_name = str(_require(raw, "eventKind", "event"))
    try:
        kind = EventKind(kind_name)
    except ValueError:
        raise UnknownEventKind(kind_name) from None
    block = _require(raw, "block", kind_name)
    transaction = _require(raw, "transaction", kind_name)
    return EventEnvelope(
        kind=kind,
        contract_address=_address(_require(raw, "contractAddress", kind_name)),
        block=BlockInfo(
            number=_int(_require(block, "number", "block"), "block.number"),
            timestamp=_int(_require(block, "timestamp", "block"), "block.timestamp"),
            hash=str(block.get("hash", "")),
        ),
        transaction_hash=str(_require(transaction, "hash", "transaction")),
        log_index=_int(_require(raw, "logIndex", kind_name), "logIndex"),
    )


def decode_event(raw: Mapping[str, Any], token_decimals: int = WEI_DECIMALS) -> ChainEvent:
    """Decode a raw `{eventKind, params, contractAddress, block, transaction, logIndex}` dict.

    Raises UnknownEventKind for kinds the ledgers do not handle and
    EventDecodeError for malformed payloads.
    """
    envelope = decode_envelope(raw)
    params = raw.get("params") or {}
    where = envelope.kind.value

    if envelope.kind == EventKind.TRANSFER:
        return TransferEvent(
            envelope=envelope,
            sender=_address(_require(params, "from", where)),
            recipient=_address(_require(params, "to", where)),
            value=_wei(_require(params, "value", where), "value", token_decimals),
        )
    if envelope.kind == EventKind.TRADE:
        return TradeEvent(
            envelope=envelope,
            trader=_address(_require(params, "trader", where)),
            is_buy=_bool(_require(params, "isBuy", where)),
            amount=_wei(_require(params, "amount", where), "amount", token_decimals),
            eth_amount=_wei(_require(params, "ethAmount", where), "ethAmount", WEI_DECIMALS),
        )
    if envelope.kind == EventKind.STAKED:
        return StakedEvent(
            envelope=envelope,
            owner=_address(_require(params, "owner", where)),
            unit_id=str(_require(params, "tokenId", where)),
            timestamp=_int(_require(params, "timestamp", where), "timestamp"),
        )
    if envelope.kind == EventKind.PRICE_UPDATE:
        return PriceUpdateEvent(
            envelope=envelope,
            price=_wei(_require(params, "newPrice", where), "newPrice", WEI_DECIMALS),
            token_supply=_wei(_require(params, "tokenSupply", where), "tokenSupply", token_decimals),
            curve_multiplier=_wei(
                _require(params, "curveMultiplierValue", where), "curveMultiplierValue", WEI_DECIMALS
            ),
        )
    if envelope.kind == EventKind.UNSTAKED:
        return UnstakedEvent(
            envelope=envelope,
            owner=_address(_require(params, "owner", where)),
            unit_id=str(_require(params, "tokenId", where)),
            timestamp=_int(_require(params, "timestamp", where), "timestamp"),
        )
    return EmergencyWithdrawEvent(
        envelope=envelope,
        owner=_address(_require(params, "owner", where)),
        unit_id=str(_require(params, "tokenId", where)),
        recipient=_address(params.get("recipient", "")),
    )
