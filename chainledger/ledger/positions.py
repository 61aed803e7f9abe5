"""Per-(asset, account) balance and cost-basis accounting."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from chainledger.config.settings import LedgerConfig, ZERO_ADDRESS
from chainledger.ledger.entities import Position, PositionSnapshot
from chainledger.ledger.errors import MissingPosition, NegativeBalance
from chainledger.ledger.numeric import ZERO, clamp_non_negative


@dataclass(frozen=True)
class PositionUpdate:
    position: Position
    snapshot: PositionSnapshot


@dataclass(frozen=True)
class SnapshotContext:
    """Where in the chain an update happened."""

    transaction_hash: str
    log_index: int
    block_number: int
    timestamp: int


class PositionLedger:
    """Pure update functions for Position entities.

    Transfers move balances only. Cost and sales are booked exclusively by
    trades, which read the balance already moved by the paired transfer, so
    wallet-to-wallet transfers never disturb cost basis.
    """

    def __init__(
        self,
        dust_threshold: Decimal = Decimal("0.001"),
        sentinel_address: str = ZERO_ADDRESS,
    ) -> None:
        self.dust_threshold = dust_threshold
        self.sentinel_address = sentinel_address.lower()

    @classmethod
    def from_config(cls, config: LedgerConfig) -> "PositionLedger":
        return cls(dust_threshold=config.dust_threshold, sentinel_address=config.sentinel_address)

    def is_sentinel(self, account: str) -> bool:
        return account.lower() == self.sentinel_address

    def apply_transfer(
        self,
        position: Position | None,
        asset: str,
        account: str,
        balance_delta: Decimal,
        price: Decimal,
        ctx: SnapshotContext,
    ) -> PositionUpdate | None:
        """Move `balance_delta` into the account's position.

        Returns None for the mint/burn sentinel, whose position is not tracked,
        and for a zero-value movement into an account with no position.
        Raises MissingPosition when the first movement seen for an account is
        a decrease, and NegativeBalance when a decrease overdraws the position.
        """
        if self.is_sentinel(account):
            return None
        if position is None:
            if balance_delta == ZERO:
                return None
            if balance_delta < ZERO:
                raise MissingPosition(
                    "transfer out of an account with no position",
                    asset=asset,
                    account=account,
                    balance_delta=balance_delta,
                )
            position = Position(
                asset=asset,
                account=account,
                balance=balance_delta,
                last_price=price,
                last_market_cap=balance_delta * price,
            )
        else:
            new_balance = position.balance + balance_delta
            if new_balance < ZERO:
                raise NegativeBalance(
                    "transfer out exceeds the position balance",
                    asset=asset,
                    account=account,
                    balance=position.balance,
                    balance_delta=balance_delta,
                )
            position = replace(
                position,
                balance=new_balance,
                last_market_cap=new_balance * price,
            )
        return PositionUpdate(position=position, snapshot=self._snapshot(position, price, ctx))

    def apply_trade(
        self,
        position: Position | None,
        asset: str,
        account: str,
        token_amount_delta: Decimal,
        eth_amount: Decimal,
        price: Decimal,
        ctx: SnapshotContext,
    ) -> PositionUpdate:
        """Book a buy (positive delta) or sell (negative delta) against cost basis."""
        if position is None:
            raise MissingPosition(
                "trade before any transfer established a position",
                asset=asset,
                account=account,
                token_amount_delta=token_amount_delta,
            )

        total_cost = position.total_cost
        total_sales = position.total_sales
        if token_amount_delta > ZERO:
            total_cost += eth_amount
        else:
            sold = abs(token_amount_delta)
            remaining = position.balance
            before = remaining + sold
            total_sales += eth_amount
            if before > ZERO:
                if remaining == ZERO:
                    total_cost = ZERO
                    total_sales = ZERO
                elif remaining < self.dust_threshold:
                    total_cost = ZERO
                else:
                    proportion = sold / before
                    total_cost = clamp_non_negative(total_cost - total_cost * proportion)

        position = replace(
            position,
            total_cost=total_cost,
            total_sales=total_sales,
            last_price=price,
            last_market_cap=position.balance * price,
        )
        return PositionUpdate(position=position, snapshot=self._snapshot(position, price, ctx))

    @staticmethod
    def _snapshot(position: Position, price: Decimal, ctx: SnapshotContext) -> PositionSnapshot:
        return PositionSnapshot(
            transaction_hash=ctx.transaction_hash,
            log_index=ctx.log_index,
            asset=position.asset,
            account=position.account,
            balance=position.balance,
            price=price,
            market_cap=position.balance * price,
            timestamp=ctx.timestamp,
            block_number=ctx.block_number,
        )
