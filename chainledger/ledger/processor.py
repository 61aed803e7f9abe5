"""Applies ordered chain events to the position and reward ledgers."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

import structlog

from chainledger.config.settings import Settings
from chainledger.ledger.entities import (
    AssetPrice,
    Position,
    RewardState,
    StakeRecord,
    StakingLogEntry,
)
from chainledger.ledger.errors import DataConsistencyError, UnknownEventKind
from chainledger.ledger.events import (
    ChainEvent,
    EmergencyWithdrawEvent,
    EventEnvelope,
    PriceUpdateEvent,
    StakedEvent,
    TradeEvent,
    TransferEvent,
    UnstakedEvent,
    decode_event,
)
from chainledger.ledger.numeric import WEI_DECIMALS, format_decimal
from chainledger.ledger.positions import PositionLedger, PositionUpdate, SnapshotContext
from chainledger.ledger.prices import apply_price_update, current_price
from chainledger.ledger.rewards import LogContext, RewardAccrualLedger, RewardUpdate
from chainledger.ledger.store import EntityStore
from chainledger.monitoring.metrics import Metrics

log = structlog.get_logger(__name__)


@dataclass
class ProcessingStats:
    applied: int = 0
    ignored: int = 0
    violations: int = 0
    by_kind: Counter[str] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": self.applied,
            "ignored": self.ignored,
            "violations": self.violations,
            "by_kind": dict(self.by_kind),
        }


class EventProcessor:
    """Single-writer reducer over one chain's ordered event stream.

    Each ledger update reads everything it needs from the store, computes the
    new state with a pure ledger function, and only then writes.
    """

    def __init__(
        self,
        store: EntityStore,
        positions: PositionLedger | None = None,
        rewards: RewardAccrualLedger | None = None,
        metrics: Metrics | None = None,
        token_decimals: int = WEI_DECIMALS,
    ) -> None:
        self.store = store
        self.positions = positions or PositionLedger()
        self.rewards = rewards or RewardAccrualLedger()
        self.metrics = metrics
        self.token_decimals = token_decimals
        self.stats = ProcessingStats()
        self._last_key: tuple[int, int] | None = None
        self._handlers: dict[type, Callable[[Any], None]] = {
            TransferEvent: self._handle_transfer,
            TradeEvent: self._handle_trade,
            StakedEvent: self._handle_staked,
            UnstakedEvent: self._handle_unstaked,
            EmergencyWithdrawEvent: self._handle_emergency_withdraw,
            PriceUpdateEvent: self._handle_price_update,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: EntityStore,
        metrics: Metrics | None = None,
    ) -> "EventProcessor":
        return cls(
            store=store,
            positions=PositionLedger.from_config(settings.ledger),
            rewards=RewardAccrualLedger.from_config(settings.rewards),
            metrics=metrics,
            token_decimals=settings.ledger.token_decimals,
        )

    @property
    def last_ordering_key(self) -> tuple[int, int] | None:
        """(block number, log index) of the furthest event applied so far."""
        return self._last_key

    def resume_after(self, key: tuple[int, int]) -> None:
        """Continue from a checkpoint; earlier keys count as out of order."""
        self._last_key = key

    def replay(self, raw_events: Iterable[Mapping[str, Any]]) -> ProcessingStats:
        for raw in raw_events:
            self.process_raw(raw)
        return self.stats

    def process_raw(self, raw: Mapping[str, Any]) -> bool:
        """Decode and apply one raw envelope. Unknown kinds are logged and skipped."""
        try:
            event = decode_event(raw, self.token_decimals)
        except UnknownEventKind as exc:
            self.stats.ignored += 1
            if self.metrics:
                self.metrics.events_ignored_total.inc()
            log.debug("event_ignored", event_kind=exc.event_kind, log_index=raw.get("logIndex"))
            return False
        return self.apply(event)

    def apply(self, event: ChainEvent) -> bool:
        """Apply a decoded event. Returns False if any update was skipped."""
        envelope = event.envelope
        self._check_order(envelope)
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"no handler for {type(event).__name__}")
        violations_before = self.stats.violations
        handler(event)
        self.stats.applied += 1
        self.stats.by_kind[envelope.kind.value] += 1
        if self.metrics:
            self.metrics.events_processed_total.labels(kind=envelope.kind.value).inc()
            self.metrics.last_block_number.set(envelope.block.number)
        return self.stats.violations == violations_before

    def _check_order(self, envelope: EventEnvelope) -> None:
        key = envelope.ordering_key
        if self._last_key is not None and key < self._last_key:
            log.warning(
                "event_out_of_order",
                block_number=key[0],
                log_index=key[1],
                last_block_number=self._last_key[0],
                last_log_index=self._last_key[1],
            )
        else:
            self._last_key = key

    def _report(self, exc: DataConsistencyError, envelope: EventEnvelope) -> None:
        self.stats.violations += 1
        if self.metrics:
            self.metrics.consistency_violations_total.labels(kind=exc.kind).inc()
        context = {
            key: format_decimal(value) if isinstance(value, Decimal) else value
            for key, value in exc.context.items()
        }
        log.warning(
            "ledger_update_skipped",
            violation=exc.kind,
            reason=str(exc),
            event_kind=envelope.kind.value,
            transaction_hash=envelope.transaction_hash,
            block_number=envelope.block.number,
            log_index=envelope.log_index,
            **context,
        )

    # -- positions -------------------------------------------------------

    def _handle_transfer(self, event: TransferEvent) -> None:
        ctx = self._snapshot_context(event.envelope)
        asset = event.envelope.contract_address
        price = current_price(self.store.get(AssetPrice, asset))
        # Sender first, then recipient: each side is its own read-then-write
        # update, so a self-transfer nets to zero.
        for account, delta in ((event.sender, -event.value), (event.recipient, event.value)):
            position = self.store.get(Position, Position.make_id(asset, account))
            try:
                update = self.positions.apply_transfer(
                    position, asset, account, delta, price, ctx
                )
            except DataConsistencyError as exc:
                self._report(exc, event.envelope)
                continue
            if update is not None:
                self._write_position(update)

    def _handle_trade(self, event: TradeEvent) -> None:
        asset = event.envelope.contract_address
        position = self.store.get(Position, Position.make_id(asset, event.trader))
        try:
            update = self.positions.apply_trade(
                position,
                asset,
                event.trader,
                event.token_amount_delta,
                event.eth_amount,
                current_price(self.store.get(AssetPrice, asset)),
                self._snapshot_context(event.envelope),
            )
        except DataConsistencyError as exc:
            self._report(exc, event.envelope)
            return
        self._write_position(update)
        log.debug(
            "position_trade_applied",
            asset=asset,
            account=event.trader,
            side="BUY" if event.is_buy else "SELL",
            balance=format_decimal(update.position.balance),
            total_cost=format_decimal(update.position.total_cost),
            total_sales=format_decimal(update.position.total_sales),
        )

    def _write_position(self, update: PositionUpdate) -> None:
        self.store.set(update.position)
        self._append(update.snapshot)

    @staticmethod
    def _snapshot_context(envelope: EventEnvelope) -> SnapshotContext:
        return SnapshotContext(
            transaction_hash=envelope.transaction_hash,
            log_index=envelope.log_index,
            block_number=envelope.block.number,
            timestamp=envelope.block.timestamp,
        )

    def _handle_price_update(self, event: PriceUpdateEvent) -> None:
        asset = event.envelope.contract_address
        change = apply_price_update(
            asset,
            event.price,
            event.token_supply,
            event.curve_multiplier,
            self._snapshot_context(event.envelope),
        )
        self.store.set(change.asset_price)
        self._append(change.snapshot)
        log.debug(
            "asset_price_updated",
            asset=asset,
            price=format_decimal(event.price),
            market_cap=format_decimal(change.asset_price.market_cap),
        )

    # -- rewards ---------------------------------------------------------

    def _handle_staked(self, event: StakedEvent) -> None:
        state = self.store.get(RewardState, event.owner)
        record = self.store.get(StakeRecord, event.unit_id)
        try:
            update = self.rewards.on_stake(
                state,
                record,
                event.owner,
                event.unit_id,
                event.timestamp,
                self._log_context(event.envelope),
            )
        except DataConsistencyError as exc:
            self._report(exc, event.envelope)
            return
        self._write_reward(update)
        log.info(
            "unit_staked",
            account=event.owner,
            unit_id=event.unit_id,
            timestamp=event.timestamp,
            points=format_decimal(update.state.points_at_last_update),
            rate=format_decimal(update.state.current_rate_per_second),
            active_units=update.state.active_unit_count,
        )

    def _handle_unstaked(self, event: UnstakedEvent) -> None:
        state, record, history = self._read_unit(event.owner, event.unit_id)
        try:
            update = self.rewards.on_unstake(
                state,
                record,
                history,
                event.owner,
                event.unit_id,
                event.timestamp,
                self._log_context(event.envelope),
            )
        except DataConsistencyError as exc:
            self._report(exc, event.envelope)
            return
        self._write_reward(update)
        self._log_removal("unit_unstaked", update)

    def _handle_emergency_withdraw(self, event: EmergencyWithdrawEvent) -> None:
        state, record, history = self._read_unit(event.owner, event.unit_id)
        try:
            update = self.rewards.on_emergency_withdraw(
                state,
                record,
                history,
                event.owner,
                event.unit_id,
                event.timestamp,
                self._log_context(event.envelope),
            )
        except DataConsistencyError as exc:
            self._report(exc, event.envelope)
            return
        if update is None:
            log.info(
                "emergency_withdraw_noop",
                account=event.owner,
                unit_id=event.unit_id,
                reason="unit not staked by account",
            )
            return
        self._write_reward(update)
        self._log_removal("unit_emergency_withdrawn", update, recipient=event.recipient)

    def _read_unit(
        self, account: str, unit_id: str
    ) -> tuple[RewardState | None, StakeRecord | None, list[StakingLogEntry]]:
        return (
            self.store.get(RewardState, account),
            self.store.get(StakeRecord, unit_id),
            self.store.get_where(StakingLogEntry, "account_id", account),
        )

    def _write_reward(self, update: RewardUpdate) -> None:
        self.store.set(update.state)
        if update.created_record is not None:
            self.store.set(update.created_record)
        if update.removed_record is not None:
            self.store.delete(StakeRecord, update.removed_record.id)
        self._append(update.log_entry)
        if update.forfeiture is not None and self.metrics:
            self.metrics.points_forfeited_total.inc(float(update.forfeiture.total))

    def _log_removal(self, event_name: str, update: RewardUpdate, **extra: Any) -> None:
        forfeiture = update.forfeiture
        log.info(
            event_name,
            account=update.state.account,
            unit_id=update.log_entry.unit_id,
            timestamp=update.log_entry.timestamp,
            base_forfeited=format_decimal(forfeiture.base) if forfeiture else "0",
            bonus_forfeited=format_decimal(forfeiture.bonus) if forfeiture else "0",
            points=format_decimal(update.state.points_at_last_update),
            rate=format_decimal(update.state.current_rate_per_second),
            active_units=update.state.active_unit_count,
            **extra,
        )

    @staticmethod
    def _log_context(envelope: EventEnvelope) -> LogContext:
        return LogContext(
            block_number=envelope.block.number,
            log_index=envelope.log_index,
            transaction_hash=envelope.transaction_hash,
        )

    def _append(self, record: Any) -> None:
        if self.store.get(type(record), record.id) is not None:
            log.debug("append_only_record_exists", record_id=record.id)
            return
        self.store.set(record)
