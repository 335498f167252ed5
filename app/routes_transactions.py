# routes_transactions.py
"""
Routes for the per-user transaction list and single-transaction CRUD.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from app.deps import get_current_user_id, get_store
from app.schemas import (
    TransactionCreate,
    TransactionOut,
    TransactionPage,
    TransactionUpdate,
)
from app.services.transaction_store import TransactionStore
from models import TransactionType

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _page(transactions, total: int, limit: Optional[int] = None, offset: int = 0) -> TransactionPage:
    return TransactionPage(
        total=total,
        limit=limit,
        offset=offset,
        transactions=[TransactionOut.model_validate(tx) for tx in transactions],
    )


@router.get("", response_model=TransactionPage)
def list_transactions(
    type: Optional[TransactionType] = Query(None),
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    """
    List the caller's transactions, newest first.

    `type` and `category` select the by-type / by-category views (both may be
    given). Paging applies to the unfiltered timeline only.
    """
    if type is not None or category is not None:
        if type is not None:
            transactions = store.list_by_user_and_type(user_id, type)
            if category is not None:
                transactions = [tx for tx in transactions if tx.category == category.strip()]
        else:
            transactions = store.list_by_user_and_category(user_id, category)
        return _page(transactions, total=len(transactions))

    return _page(
        store.list_by_user(user_id, limit=limit, offset=offset),
        total=store.count_by_user(user_id),
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    return store.create(
        user_id,
        amount=payload.amount,
        type=payload.type,
        category=payload.category,
        source=payload.source,
        timestamp=payload.timestamp,
        description=payload.description,
    )


@router.get("/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: int,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    return store.get(transaction_id, user_id)


@router.patch("/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    # Only fields the client actually sent
    fields = payload.model_dump(exclude_unset=True)
    return store.update(transaction_id, user_id, fields)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    store.delete(transaction_id, user_id)
    return Response(status_code=204)
