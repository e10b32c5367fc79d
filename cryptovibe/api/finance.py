"""
Personal finance API endpoints: transactions, categories, savings.
"""

import datetime as dt
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cryptovibe.models.base import get_db
from cryptovibe.models.enums import CategoryKind, TransactionKind
from cryptovibe.services.finance_service import FinanceService
from cryptovibe.schemas.finance import (
    TransactionCreate,
    TransactionUpdate,
    TransactionFilter,
    TransactionResponse,
    MonthlySummary,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryDeleteResult,
    SavingsVaultCreate,
    SavingsVaultUpdate,
    SavingsVaultResponse,
    SavingsDeposit,
)

router = APIRouter(prefix="/finance", tags=["Finance"])


# --- Transaction Endpoints ---

@router.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    type: TransactionKind | None = None,
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    filters = TransactionFilter(
        type=type, start_date=start_date, end_date=end_date, limit=limit,
    )
    return FinanceService(db).list_transactions(filters)


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def add_transaction(
    request: TransactionCreate,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        txn = service.add_transaction(request)
        db.commit()
        return txn
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: uuid.UUID,
    request: TransactionUpdate,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        txn = service.update_transaction(transaction_id, request)
        db.commit()
        return txn
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        service.delete_transaction(transaction_id)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/summary/{year}/{month}", response_model=MonthlySummary)
def get_monthly_summary(
    year: int,
    month: int,
    db: Session = Depends(get_db),
):
    """Income, expense and investment totals for one month."""
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be between 1 and 12")
    return FinanceService(db).monthly_summary(year, month)


# --- Category Endpoints ---

@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(
    type: CategoryKind | None = None,
    db: Session = Depends(get_db),
):
    return FinanceService(db).list_categories(type)


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def add_category(
    request: CategoryCreate,
    db: Session = Depends(get_db),
):
    category = FinanceService(db).add_category(request)
    db.commit()
    return category


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: uuid.UUID,
    request: CategoryUpdate,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        category = service.update_category(category_id, request)
        db.commit()
        return category
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/categories/{category_id}", response_model=CategoryDeleteResult)
def delete_category(
    category_id: uuid.UUID,
    force: bool = False,
    db: Session = Depends(get_db),
):
    """
    Delete a category.

    Without force, a category with linked transactions is not
    deleted and the response reports how many are linked.
    """
    service = FinanceService(db)
    try:
        result = service.delete_category(category_id, force=force)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    if result.success:
        db.commit()
    return result


# --- Savings Vault Endpoints ---

@router.get("/savings", response_model=list[SavingsVaultResponse])
def list_savings_vaults(
    include_completed: bool = True,
    db: Session = Depends(get_db),
):
    return FinanceService(db).list_savings_vaults(include_completed)


@router.post("/savings", response_model=SavingsVaultResponse, status_code=201)
def add_savings_vault(
    request: SavingsVaultCreate,
    db: Session = Depends(get_db),
):
    vault = FinanceService(db).add_savings_vault(request)
    db.commit()
    return vault


@router.patch("/savings/{vault_id}", response_model=SavingsVaultResponse)
def update_savings_vault(
    vault_id: uuid.UUID,
    request: SavingsVaultUpdate,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        vault = service.update_savings_vault(vault_id, request)
        db.commit()
        return vault
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/savings/{vault_id}", status_code=204)
def delete_savings_vault(
    vault_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        service.delete_savings_vault(vault_id)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/savings/{vault_id}/deposit", response_model=SavingsVaultResponse)
def deposit_to_savings_vault(
    vault_id: uuid.UUID,
    request: SavingsDeposit,
    db: Session = Depends(get_db),
):
    service = FinanceService(db)
    try:
        vault = service.deposit_to_savings_vault(vault_id, request.amount)
        db.commit()
        return vault
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
