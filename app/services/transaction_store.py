# app/services/transaction_store.py
#
# Transaction Store
# Persists transactions per user and serves the indexed read paths:
# timeline (user_id, timestamp desc), by type (user_id, type) and by
# category (user_id, category). Every lookup is scoped to the owning user.

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Iterable, Mapping

from sqlalchemy import case, func

from app.errors import NotFoundError, ValidationError
from app.logging_setup import get_logger
from db import Database
from models import Transaction, TransactionSource, TransactionType, utcnow

logger = get_logger("stash.store")

MUTABLE_FIELDS = frozenset(
    {"amount", "type", "category", "source", "timestamp", "description"}
)
IMMUTABLE_FIELDS = frozenset({"id", "user_id", "created_at"})
# create() defaults these when omitted; an update may not clear them
NON_NULLABLE_ON_UPDATE = frozenset({"source", "timestamp"})


# ---- Field validation ----

def validate_user_id(user_id: Any) -> str:
    value = str(user_id).strip() if user_id is not None else ""
    if not value:
        raise ValidationError("user_id", "is required")
    return value


def validate_amount(amount: Any) -> float:
    # bool is a Real subclass, reject it explicitly
    if isinstance(amount, bool) or amount is None:
        raise ValidationError("amount", "must be a number")
    if isinstance(amount, Real):
        value = float(amount)
    else:
        try:
            value = float(str(amount).strip())
        except ValueError:
            raise ValidationError("amount", f"must be a number, got {amount!r}") from None
    if math.isnan(value) or math.isinf(value):
        raise ValidationError("amount", "must be a finite number")
    if value < 0:
        raise ValidationError("amount", "must be >= 0")
    return value


def _coerce_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(field_name, f"must be one of: {allowed}") from None


def validate_type(value: Any) -> TransactionType:
    return _coerce_enum(TransactionType, value, "type")


def validate_source(value: Any) -> TransactionSource:
    if value is None:
        return TransactionSource.MANUAL
    return _coerce_enum(TransactionSource, value, "source")


def validate_category(value: Any) -> str:
    category = str(value).strip() if value is not None else ""
    if not category:
        raise ValidationError("category", "must not be empty")
    return category


def validate_timestamp(value: Any) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("timestamp", f"invalid ISO datetime {value!r}") from None
    if not isinstance(value, datetime):
        raise ValidationError("timestamp", "must be a datetime")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_description(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


_VALIDATORS = {
    "amount": validate_amount,
    "type": validate_type,
    "category": validate_category,
    "source": validate_source,
    "timestamp": validate_timestamp,
    "description": validate_description,
}


# ---- Aggregates ----

@dataclass
class CategoryTotal:
    category: str
    income: float = 0.0
    expense: float = 0.0
    count: int = 0


@dataclass
class TransactionSummary:
    user_id: str
    income: float = 0.0
    expense: float = 0.0
    count: int = 0
    categories: list[CategoryTotal] = field(default_factory=list)
    start: datetime | None = None
    end: datetime | None = None

    @property
    def net(self) -> float:
        return self.income - self.expense


# ---- Store ----

class TransactionStore:
    """Data-access layer for transactions, bound to one Database handle."""

    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        user_id: str,
        amount: Any,
        type: Any,
        category: Any,
        source: Any = None,
        timestamp: Any = None,
        description: Any = None,
    ) -> Transaction:
        tx = Transaction(
            user_id=validate_user_id(user_id),
            amount=validate_amount(amount),
            type=validate_type(type),
            category=validate_category(category),
            source=validate_source(source),
            timestamp=validate_timestamp(timestamp),
            description=validate_description(description),
            created_at=utcnow(),
        )
        with self.database.session_scope() as session:
            session.add(tx)
            session.flush()
            session.refresh(tx)
        logger.debug("created transaction id=%s user_id=%s", tx.id, tx.user_id)
        return tx

    def create_many(self, user_id: str, rows: Iterable[Mapping[str, Any]]) -> list[Transaction]:
        """Validate every row first, then insert them in one database transaction."""
        owner = validate_user_id(user_id)
        now = utcnow()
        objs = []
        for row in rows:
            objs.append(
                Transaction(
                    user_id=owner,
                    amount=validate_amount(row.get("amount")),
                    type=validate_type(row.get("type")),
                    category=validate_category(row.get("category")),
                    source=validate_source(row.get("source")),
                    timestamp=validate_timestamp(row.get("timestamp")),
                    description=validate_description(row.get("description")),
                    created_at=now,
                )
            )
        if not objs:
            return []
        with self.database.session_scope() as session:
            session.add_all(objs)
        logger.debug("created %d transactions for user_id=%s", len(objs), owner)
        return objs

    def get(self, transaction_id: int, user_id: str) -> Transaction:
        with self.database.session_scope() as session:
            return self._get_owned(session, transaction_id, user_id)

    def list_by_user(
        self,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Transaction]:
        """All transactions of a user, newest `timestamp` first (ties keep insertion order)."""
        with self.database.session_scope() as session:
            query = (
                session.query(Transaction)
                .filter(Transaction.user_id == user_id)
                .order_by(Transaction.timestamp.desc(), Transaction.id.asc())
            )
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def count_by_user(self, user_id: str) -> int:
        with self.database.session_scope() as session:
            return (
                session.query(func.count(Transaction.id))
                .filter(Transaction.user_id == user_id)
                .scalar()
                or 0
            )

    def list_by_user_and_type(self, user_id: str, type: Any) -> list[Transaction]:
        tx_type = validate_type(type)
        with self.database.session_scope() as session:
            return (
                session.query(Transaction)
                .filter(Transaction.user_id == user_id, Transaction.type == tx_type)
                .order_by(Transaction.timestamp.desc(), Transaction.id.asc())
                .all()
            )

    def list_by_user_and_category(self, user_id: str, category: Any) -> list[Transaction]:
        label = str(category).strip() if category is not None else ""
        if not label:
            return []
        with self.database.session_scope() as session:
            return (
                session.query(Transaction)
                .filter(Transaction.user_id == user_id, Transaction.category == label)
                .order_by(Transaction.timestamp.desc(), Transaction.id.asc())
                .all()
            )

    def update(
        self,
        transaction_id: int,
        user_id: str,
        fields: Mapping[str, Any],
    ) -> Transaction:
        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name in IMMUTABLE_FIELDS:
                raise ValidationError(name, "cannot be changed")
            if name not in MUTABLE_FIELDS:
                raise ValidationError(name, "unknown field")
            if name in NON_NULLABLE_ON_UPDATE and value is None:
                raise ValidationError(name, "is required")
            changes[name] = _VALIDATORS[name](value)

        with self.database.session_scope() as session:
            tx = self._get_owned(session, transaction_id, user_id)
            for name, value in changes.items():
                setattr(tx, name, value)
        logger.debug(
            "updated transaction id=%s user_id=%s fields=%s",
            transaction_id,
            user_id,
            sorted(changes),
        )
        return tx

    def delete(self, transaction_id: int, user_id: str) -> None:
        with self.database.session_scope() as session:
            tx = self._get_owned(session, transaction_id, user_id)
            session.delete(tx)
        logger.debug("deleted transaction id=%s user_id=%s", transaction_id, user_id)

    def find_duplicate(
        self,
        user_id: str,
        amount: float,
        type: Any,
        timestamp: datetime,
        description: str | None,
    ) -> Transaction | None:
        """Return an existing transaction with the same amount, type, time and description."""
        with self.database.session_scope() as session:
            query = session.query(Transaction).filter(
                Transaction.user_id == user_id,
                Transaction.type == validate_type(type),
                Transaction.amount == amount,
                Transaction.timestamp == validate_timestamp(timestamp),
            )
            if description is None:
                query = query.filter(Transaction.description.is_(None))
            else:
                query = query.filter(Transaction.description == description)
            return query.first()

    def summarize(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> TransactionSummary:
        """
        Totals for one user, grouped by type and by category.

        `start` is inclusive and `end` exclusive; both bound `timestamp`.
        Categories are ordered by their combined total, largest first.
        """
        start = validate_timestamp(start) if start is not None else None
        end = validate_timestamp(end) if end is not None else None

        income_col = func.coalesce(
            func.sum(case((Transaction.type == TransactionType.INCOME, Transaction.amount), else_=0.0)),
            0.0,
        )
        expense_col = func.coalesce(
            func.sum(case((Transaction.type == TransactionType.EXPENSE, Transaction.amount), else_=0.0)),
            0.0,
        )

        with self.database.session_scope() as session:
            criteria = [Transaction.user_id == user_id]
            if start is not None:
                criteria.append(Transaction.timestamp >= start)
            if end is not None:
                criteria.append(Transaction.timestamp < end)

            income, expense, count = (
                session.query(income_col, expense_col, func.count(Transaction.id))
                .filter(*criteria)
                .one()
            )

            rows = (
                session.query(
                    Transaction.category,
                    income_col.label("income"),
                    expense_col.label("expense"),
                    func.count(Transaction.id).label("count"),
                )
                .filter(*criteria)
                .group_by(Transaction.category)
                .order_by(func.sum(Transaction.amount).desc(), Transaction.category)
                .all()
            )

        return TransactionSummary(
            user_id=user_id,
            income=float(income),
            expense=float(expense),
            count=int(count or 0),
            categories=[
                CategoryTotal(
                    category=r.category,
                    income=float(r.income),
                    expense=float(r.expense),
                    count=int(r.count),
                )
                for r in rows
            ],
            start=start,
            end=end,
        )

    @staticmethod
    def _get_owned(session, transaction_id: int, user_id: str) -> Transaction:
        tx = (
            session.query(Transaction)
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .one_or_none()
        )
        if tx is None:
            raise NotFoundError(transaction_id, user_id)
        return tx
