# csv_import.py
"""
CSV statement import.

Bank exports disagree on headers, number formats and how they mark money
going out, so the flow is:

1. read the file with pandas (everything as text)
2. detect which header holds date / description / amount / debit / credit /
   type / category (or take an explicit ColumnMapping)
3. turn each row into store fields; a bad row is counted, never fatal
"""

from __future__ import annotations

import io
import re
from typing import Any, Optional

import pandas as pd

from app.errors import ValidationError
from app.logging_setup import get_logger
from app.schemas import ColumnMapping, CsvPreview, ImportResult, TransactionOut
from app.services.categorize import categorize
from app.services.transaction_store import (
    TransactionStore,
    validate_amount,
    validate_category,
    validate_description,
    validate_timestamp,
)
from models import TransactionType

logger = get_logger("stash.csv_import")

PREVIEW_ROWS = 10

# Checked in this order; a header is claimed by the first concern that matches it.
COLUMN_PATTERNS: list[tuple[str, list[str]]] = [
    ("debit", ["debit", "withdrawal", "dr", "paid out"]),
    ("credit", ["credit", "deposit", "cr", "received", "paid in"]),
    ("date", ["transaction date", "txn date", "value date", "posting date", "date", "timestamp"]),
    ("description", ["description", "narration", "remarks", "particulars", "details", "merchant", "memo"]),
    ("amount", ["transaction amount", "txn amount", "amount", "sum"]),
    ("type", ["type", "direction"]),
    ("category", ["category", "tag"]),
]

_TOKEN_RE = re.compile(r"[a-z0-9]+")

_TYPE_ALIASES = {
    "income": TransactionType.INCOME,
    "credit": TransactionType.INCOME,
    "cr": TransactionType.INCOME,
    "in": TransactionType.INCOME,
    "expense": TransactionType.EXPENSE,
    "debit": TransactionType.EXPENSE,
    "dr": TransactionType.EXPENSE,
    "out": TransactionType.EXPENSE,
}


def _header_matches(header: str, pattern: str) -> bool:
    lowered = header.lower().strip()
    # Short patterns (dr/cr/...) must be a whole word, "cr" is inside "description"
    if len(pattern) <= 3:
        return pattern in _TOKEN_RE.findall(lowered)
    return pattern in lowered


def detect_columns(headers: list[str]) -> ColumnMapping:
    detected: dict[str, str] = {}
    claimed: set[str] = set()

    for concern, patterns in COLUMN_PATTERNS:
        for pattern in patterns:
            match = next(
                (h for h in headers if h not in claimed and _header_matches(h, pattern)),
                None,
            )
            if match is not None:
                detected[concern] = match
                claimed.add(match)
                break

    return ColumnMapping(**detected)


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse bank-formatted numbers: '1,234.56', '1.234,56', '−50,00',
    '(12.00)', '€ 9.99'. Returns None for blanks and junk.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None

    negative = s.startswith("(") and s.endswith(")")
    # Replace Unicode minus with normal minus
    s = s.replace("−", "-")
    s = re.sub(r"[^0-9,.\-]", "", s)
    if not s or s in {"-", ".", ","}:
        return None

    if "," in s and "." in s:
        # Whichever separator comes last is the decimal one
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        head, _, tail = s.rpartition(",")
        if len(tail) in (1, 2) and "," not in head:
            s = f"{head}.{tail}"
        else:
            s = s.replace(",", "")

    try:
        number = float(s)
    except ValueError:
        return None
    return -abs(number) if negative else number


def parse_date(value: Any):
    text = str(value or "").strip()
    if not text:
        return None
    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        # European exports: 31.08.2025 / 31/08/2025
        ts = pd.to_datetime(text, errors="coerce", dayfirst=True)
    if pd.isna(ts):
        raise ValidationError("timestamp", f"unrecognized date {text!r}")
    return ts.to_pydatetime()


def read_csv(data: bytes) -> pd.DataFrame:
    for encoding in ("utf-8-sig", "utf-16", "latin-1"):
        try:
            df = pd.read_csv(
                io.BytesIO(data),
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                encoding=encoding,
            )
        except UnicodeError:
            continue
        df.columns = [str(c).strip() for c in df.columns]
        return df
    raise ValueError("unsupported text encoding")


def _cell(row: dict, column: Optional[str]) -> str:
    if not column:
        return ""
    return str(row.get(column, "") or "").strip()


def row_to_fields(row: dict, mapping: ColumnMapping) -> Optional[dict]:
    """
    Build create() arguments for one CSV row.

    Returns None for rows with neither a date nor any amount (blank lines,
    footers); raises ValidationError for rows that can't be interpreted.
    """
    raw_date = _cell(row, mapping.date)
    debit = parse_amount(_cell(row, mapping.debit))
    credit = parse_amount(_cell(row, mapping.credit))
    amount = parse_amount(_cell(row, mapping.amount))

    if not raw_date and amount is None and not debit and not credit:
        return None

    raw_type = _cell(row, mapping.type).lower()
    if debit:
        tx_type, value = TransactionType.EXPENSE, abs(debit)
    elif credit:
        tx_type, value = TransactionType.INCOME, abs(credit)
    elif amount is not None:
        if raw_type in _TYPE_ALIASES:
            tx_type = _TYPE_ALIASES[raw_type]
        else:
            tx_type = TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME
        value = abs(amount)
    else:
        raise ValidationError("amount", "row has no amount")

    description = validate_description(_cell(row, mapping.description))
    category = _cell(row, mapping.category)
    if not category:
        category, _, _ = categorize(description, tx_type)

    return {
        "amount": validate_amount(value),
        "type": tx_type,
        "category": validate_category(category),
        "timestamp": validate_timestamp(parse_date(raw_date)),
        "description": description,
    }


def preview_csv(data: bytes) -> CsvPreview:
    try:
        df = read_csv(data)
    except (ValueError, pd.errors.ParserError) as e:
        logger.info("csv preview failed: %s", e)
        return CsvPreview(error=str(e))

    headers = list(df.columns)
    if df.empty:
        return CsvPreview(headers=headers)

    return CsvPreview(
        headers=headers,
        rows=df.head(PREVIEW_ROWS).to_dict(orient="records"),
        total_rows=len(df),
        detected_columns=detect_columns(headers),
    )


def import_csv(
    store: TransactionStore,
    user_id: str,
    data: bytes,
    mapping: Optional[ColumnMapping] = None,
) -> ImportResult:
    """
    Import every row of a CSV statement for `user_id`.

    Rows matching an existing transaction (same amount, type, time and
    description), or an earlier row of the same file, are counted as
    duplicates. The remaining rows are inserted in one database transaction.
    """
    df = read_csv(data)
    result = ImportResult()
    if df.empty:
        return result

    mapping = mapping or detect_columns(list(df.columns))
    pending: list[dict] = []
    seen: set[tuple] = set()

    for i, row in enumerate(df.to_dict(orient="records"), start=1):
        try:
            fields = row_to_fields(row, mapping)
        except ValidationError as e:
            logger.info("csv row %d rejected: %s", i, e)
            result.errors += 1
            continue

        if fields is None:
            result.skipped += 1
            continue

        key = (fields["amount"], fields["type"], fields["timestamp"], fields["description"])
        if key in seen or store.find_duplicate(user_id, *key):
            result.duplicates += 1
            continue
        seen.add(key)
        pending.append(fields)

    created = store.create_many(user_id, pending)
    result.processed = len(created)
    result.transactions = [TransactionOut.model_validate(tx) for tx in created]

    logger.info(
        "csv import user_id=%s processed=%d duplicates=%d errors=%d skipped=%d",
        user_id,
        result.processed,
        result.duplicates,
        result.errors,
        result.skipped,
    )
    return result
