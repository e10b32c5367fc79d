"""
Crypto service — the portfolio of held crypto assets.

One row per symbol. Buying more of a held symbol folds the new
lot into the position and recalculates the weighted average
price. Every mutation is described to the AuditService after the
write has been flushed.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cryptovibe.models.asset import Asset
from cryptovibe.models.enums import AuditTrigger
from cryptovibe.schemas.crypto import AssetCreate, SellResult
from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.snapshots import row_snapshot


def weighted_average_price(
    quantity: Decimal,
    price: Decimal,
    added_quantity: Decimal,
    added_price: Decimal,
) -> Decimal:
    """Average cost of a position after adding a lot to it."""
    total_quantity = quantity + added_quantity
    return (quantity * price + added_quantity * added_price) / total_quantity


class CryptoService:

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.audit = audit or AuditService(db)

    def _find(self, symbol: str) -> Asset | None:
        return self.db.execute(
            select(Asset).where(Asset.symbol == symbol.strip().upper())
        ).scalar_one_or_none()

    def _require(self, symbol: str) -> Asset:
        asset = self._find(symbol)
        if not asset:
            raise ValueError(f"Asset {symbol.upper()} not found")
        return asset

    def add_asset(
        self,
        request: AssetCreate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> Asset:
        """Open a new position. Raises ValueError if the symbol is already held."""
        if self._find(request.symbol):
            raise ValueError(f"Asset {request.symbol} already exists")

        asset = Asset(
            symbol=request.symbol,
            name=request.name or request.symbol,
            quantity=request.quantity,
            buy_price=request.buy_price,
        )
        self.db.add(asset)
        self.db.flush()

        self.audit.log_crypto_action(
            "ADD_ASSET",
            asset.id,
            None,
            row_snapshot(asset, ["symbol", "quantity", "buy_price"]),
            triggered_by,
            f"Added {asset.quantity} {asset.symbol} @ ${asset.buy_price}",
        )
        return asset

    def buy(
        self,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> Asset:
        """
        Buy more of a symbol.

        Opens a new position when the symbol is not held yet,
        otherwise adds to the quantity and re-averages buy_price.
        """
        existing = self._find(symbol)
        if not existing:
            return self.add_asset(
                AssetCreate(symbol=symbol, quantity=quantity, buy_price=price),
                triggered_by,
            )

        before = row_snapshot(existing, ["quantity", "buy_price"])
        existing.buy_price = weighted_average_price(
            existing.quantity, existing.buy_price, quantity, price
        )
        existing.quantity = existing.quantity + quantity
        self.db.flush()

        self.audit.log_crypto_action(
            "BUY_MORE",
            existing.id,
            before,
            row_snapshot(existing, ["quantity", "buy_price"]),
            triggered_by,
            f"Bought {quantity} more {existing.symbol}",
        )
        return existing

    def update_quantity(
        self,
        symbol: str,
        quantity: Decimal,
        avg_price: Decimal | None = None,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> Asset:
        """Overwrite the quantity (and optionally the average price) of a position."""
        asset = self._require(symbol)

        fields = ["quantity"] if avg_price is None else ["quantity", "buy_price"]
        before = row_snapshot(asset, fields)
        asset.quantity = quantity
        if avg_price is not None:
            asset.buy_price = avg_price
        self.db.flush()

        self.audit.log_crypto_action(
            "UPDATE_ASSET",
            asset.id,
            before,
            row_snapshot(asset, fields),
            triggered_by,
            f"Updated {asset.symbol} position",
        )
        return asset

    def sell(
        self,
        symbol: str,
        quantity: Decimal,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> SellResult:
        """
        Sell part or all of a position.

        Selling the whole position (or more) removes the asset.
        """
        asset = self._find(symbol)
        if not asset:
            return SellResult(
                success=False, remaining_quantity=Decimal("0"), removed=False
            )

        remaining = asset.quantity - quantity
        if remaining <= 0:
            before = row_snapshot(asset)
            asset_id = asset.id
            self.db.delete(asset)
            self.db.flush()

            self.audit.log_crypto_action(
                "DELETE_ASSET",
                asset_id,
                before,
                None,
                triggered_by,
                f"Sold all {before['symbol']}",
            )
            return SellResult(
                success=True, remaining_quantity=Decimal("0"), removed=True
            )

        before = row_snapshot(asset, ["quantity"])
        asset.quantity = remaining
        self.db.flush()

        self.audit.log_crypto_action(
            "SELL",
            asset.id,
            before,
            row_snapshot(asset, ["quantity"]),
            triggered_by,
            f"Sold {quantity} {asset.symbol}",
        )
        return SellResult(success=True, remaining_quantity=remaining, removed=False)

    def remove_asset(
        self,
        symbol: str,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> None:
        """Remove a position entirely. Raises ValueError if not held."""
        asset = self._require(symbol)
        before = row_snapshot(asset)
        asset_id = asset.id
        self.db.delete(asset)
        self.db.flush()

        self.audit.log_crypto_action(
            "DELETE_ASSET",
            asset_id,
            before,
            None,
            triggered_by,
            f"Removed {before['symbol']} from portfolio",
        )

    def list_assets(self) -> list[Asset]:
        """Return every held asset, newest first."""
        assets = self.db.execute(
            select(Asset).order_by(Asset.created_at.desc())
        ).scalars().all()
        return list(assets)

    def get_asset(self, symbol: str) -> Asset:
        return self._require(symbol)
