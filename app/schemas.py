# app/schemas.py
# Role: Pydantic request/response shapes for the JSON API.
#       Field names are snake_case in Python and camelCase on the wire
#       (userId, createdAt, currentPrice, ...).

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models import TransactionSource, TransactionType


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -------------------------------------------------------------------
# Transactions
# -------------------------------------------------------------------

class TransactionCreate(ApiModel):
    amount: float = Field(ge=0)
    type: TransactionType
    category: str = Field(min_length=1)
    source: TransactionSource = TransactionSource.MANUAL
    timestamp: Optional[datetime] = None
    description: Optional[str] = None


class TransactionUpdate(ApiModel):
    """Partial update; only fields present in the request body are applied."""

    amount: Optional[float] = Field(default=None, ge=0)
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    source: Optional[TransactionSource] = None
    timestamp: Optional[datetime] = None
    description: Optional[str] = None


class TransactionOut(ApiModel):
    id: int
    user_id: str
    amount: float
    type: TransactionType
    category: str
    source: TransactionSource
    timestamp: datetime
    description: Optional[str] = None
    created_at: datetime


class TransactionPage(ApiModel):
    total: int
    limit: Optional[int] = None
    offset: int = 0
    transactions: list[TransactionOut]


class CategoryTotalOut(ApiModel):
    category: str
    income: float
    expense: float
    count: int


class TransactionSummaryOut(ApiModel):
    month: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    income: float
    expense: float
    net: float
    count: int
    categories: list[CategoryTotalOut]


# -------------------------------------------------------------------
# CSV import
# -------------------------------------------------------------------

class ColumnMapping(ApiModel):
    date: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[str] = None
    debit: Optional[str] = None
    credit: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None


class CsvPreview(ApiModel):
    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    total_rows: int = 0
    detected_columns: ColumnMapping = Field(default_factory=ColumnMapping)
    error: Optional[str] = None


class ImportResult(ApiModel):
    processed: int = 0
    duplicates: int = 0
    errors: int = 0
    skipped: int = 0
    transactions: list[TransactionOut] = Field(default_factory=list)


# -------------------------------------------------------------------
# Crypto market data
# -------------------------------------------------------------------

class MarketSnapshot(ApiModel):
    """One row of the top-markets list. Absent upstream values stay None."""

    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    fully_diluted_valuation: Optional[float] = None
    total_volume: Optional[float] = None
    high_24h: Optional[float] = Field(default=None, alias="high24h")
    low_24h: Optional[float] = Field(default=None, alias="low24h")
    price_change_24h: Optional[float] = Field(default=None, alias="priceChange24h")
    price_change_percentage_24h: Optional[float] = Field(default=None, alias="priceChangePercentage24h")
    price_change_percentage_7d: Optional[float] = Field(default=None, alias="priceChangePercentage7d")
    price_change_percentage_30d: Optional[float] = Field(default=None, alias="priceChangePercentage30d")
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    ath_date: Optional[str] = None
    atl: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    atl_date: Optional[str] = None
    sparkline: list[float] = Field(default_factory=list)
    last_updated: Optional[str] = None


class MarketDetail(ApiModel):
    id: str
    symbol: str
    name: str
    description: str = ""
    market_cap: Optional[float] = None
    fully_diluted_valuation: Optional[float] = None
    total_volume: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    current_price: Optional[float] = None
    price_change_24h: Optional[float] = Field(default=None, alias="priceChange24h")
    price_change_percentage_24h: Optional[float] = Field(default=None, alias="priceChangePercentage24h")
    high_24h: Optional[float] = Field(default=None, alias="high24h")
    low_24h: Optional[float] = Field(default=None, alias="low24h")
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    atl: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    market_cap_rank: Optional[int] = None
    homepage: str = ""
    blockchain_site: str = ""
    github: str = ""
    twitter: str = ""
    subreddit: str = ""
    last_updated: Optional[str] = None
