# models.py
# Role: SQLAlchemy ORM models for the Stash domain.
#       Defines the Transaction model (one income or expense recorded against
#       exactly one user) together with its closed enumerations and indexes.

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
)

from db import Base


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionSource(str, enum.Enum):
    MANUAL = "manual"
    GUEST = "guest"


def utcnow() -> datetime:
    """Current time as naive UTC (the storage convention for all timestamps)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Transaction(Base):
    """
    ORM model representing a single financial transaction.

    `timestamp` is the business-effective time and may be edited by the owner;
    `created_at` is the audit time of the insert and is never touched again.
    `user_id` is fixed at creation: a transaction never changes owner.
    """

    __tablename__ = "transactions"

    # Primary key
    id = Column(Integer, primary_key=True)

    # Owning user (identity comes from the auth layer)
    user_id = Column(String(64), nullable=False, index=True)

    # Always non-negative; direction is carried by `type`
    amount = Column(Float, nullable=False)

    type = Column(
        Enum(
            TransactionType,
            name="transaction_type",
            native_enum=False,
            create_constraint=True,
            values_callable=_enum_values,
            length=16,
        ),
        nullable=False,
    )

    # Free-form label, stored trimmed
    category = Column(String, nullable=False)

    source = Column(
        Enum(
            TransactionSource,
            name="transaction_source",
            native_enum=False,
            create_constraint=True,
            values_callable=_enum_values,
            length=16,
        ),
        nullable=False,
        default=TransactionSource.MANUAL,
    )

    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    description = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        Index("ix_transactions_user_id_type", "user_id", "type"),
        Index("ix_transactions_user_id_category", "user_id", "category"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction id={self.id} user_id={self.user_id!r} "
            f"{self.type.value if self.type else None} {self.amount} {self.category!r}>"
        )


# Per-user timeline, newest first
Index(
    "ix_transactions_user_id_timestamp",
    Transaction.user_id,
    Transaction.timestamp.desc(),
)
