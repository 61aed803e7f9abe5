"""Per-asset bonding-curve price tracking."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from chainledger.ledger.entities import AssetPrice, PriceSnapshot
from chainledger.ledger.numeric import ZERO
from chainledger.ledger.positions import SnapshotContext


@dataclass(frozen=True)
class PriceChange:
    asset_price: AssetPrice
    snapshot: PriceSnapshot


def current_price(asset_price: AssetPrice | None) -> Decimal:
    """Price used to value positions; zero before the first price update."""
    return asset_price.price if asset_price is not None else ZERO


def apply_price_update(
    asset: str,
    price: Decimal,
    token_supply: Decimal,
    curve_multiplier: Decimal,
    ctx: SnapshotContext,
) -> PriceChange:
    return PriceChange(
        asset_price=AssetPrice(
            asset=asset,
            price=price,
            token_supply=token_supply,
            market_cap=price * token_supply,
            curve_multiplier=curve_multiplier,
            updated_at=ctx.timestamp,
        ),
        snapshot=PriceSnapshot(
            transaction_hash=ctx.transaction_hash,
            log_index=ctx.log_index,
            asset=asset,
            price=price,
            token_supply=token_supply,
            curve_multiplier=curve_multiplier,
            timestamp=ctx.timestamp,
        ),
    )
