# app/routes_dashboard.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from .deps import get_current_user_id, get_store
from .schemas import CategoryTotalOut, TransactionSummaryOut
from .services.date_ranges import get_month_range
from .services.transaction_store import TransactionStore

router = APIRouter(prefix="/api/transactions", tags=["dashboard"])


@router.get("/summary", response_model=TransactionSummaryOut)
def transactions_summary(
    month: Optional[str] = Query(None, description="YYYY-MM; omit for all time"),
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    start = end = normalized_month = None
    if month:
        start, end, normalized_month = get_month_range(month)

    summary = store.summarize(user_id, start=start, end=end)

    return TransactionSummaryOut(
        month=normalized_month,
        start=summary.start,
        end=summary.end,
        income=summary.income,
        expense=summary.expense,
        net=summary.net,
        count=summary.count,
        categories=[
            CategoryTotalOut(
                category=c.category,
                income=c.income,
                expense=c.expense,
                count=c.count,
            )
            for c in summary.categories
        ],
    )
