"""
Crypto portfolio API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cryptovibe.models.base import get_db
from cryptovibe.services.crypto_service import CryptoService
from cryptovibe.schemas.crypto import (
    AssetCreate,
    AssetResponse,
    BuyRequest,
    SellRequest,
    SellResult,
    QuantityUpdate,
)

router = APIRouter(prefix="/crypto", tags=["Crypto"])


@router.get("/assets", response_model=list[AssetResponse])
def list_assets(db: Session = Depends(get_db)):
    """All held assets, newest first."""
    return CryptoService(db).list_assets()


@router.post("/assets", response_model=AssetResponse, status_code=201)
def add_asset(
    request: AssetCreate,
    db: Session = Depends(get_db),
):
    service = CryptoService(db)
    try:
        asset = service.add_asset(request)
        db.commit()
        return asset
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/assets/{symbol}", response_model=AssetResponse)
def get_asset(
    symbol: str,
    db: Session = Depends(get_db),
):
    try:
        return CryptoService(db).get_asset(symbol)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/assets/{symbol}/buy", response_model=AssetResponse)
def buy_asset(
    symbol: str,
    request: BuyRequest,
    db: Session = Depends(get_db),
):
    """
    Buy more of a symbol.

    Opens a position if the symbol is not held yet, otherwise
    re-averages the buy price.
    """
    asset = CryptoService(db).buy(symbol, request.quantity, request.price)
    db.commit()
    return asset


@router.put("/assets/{symbol}/quantity", response_model=AssetResponse)
def update_quantity(
    symbol: str,
    request: QuantityUpdate,
    db: Session = Depends(get_db),
):
    service = CryptoService(db)
    try:
        asset = service.update_quantity(symbol, request.quantity, request.avg_price)
        db.commit()
        return asset
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/assets/{symbol}/sell", response_model=SellResult)
def sell_asset(
    symbol: str,
    request: SellRequest,
    db: Session = Depends(get_db),
):
    """Sell part of a position. Selling everything removes the asset."""
    result = CryptoService(db).sell(symbol, request.quantity)
    if not result.success:
        raise HTTPException(status_code=404, detail=f"Asset {symbol.upper()} not found")
    db.commit()
    return result


@router.delete("/assets/{symbol}", status_code=204)
def remove_asset(
    symbol: str,
    db: Session = Depends(get_db),
):
    service = CryptoService(db)
    try:
        service.remove_asset(symbol)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
