from __future__ import annotations

import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from app.schemas import ColumnMapping
from app.services.csv_import import (
    detect_columns,
    import_csv,
    parse_amount,
    preview_csv,
)
from app.services.transaction_store import TransactionStore
from models import TransactionType

SIGNED_CSV = b"""Date,Description,Amount,Category
2025-01-03,Coffee Shop,-4.50,food
2025-01-01,ACME Payroll,2400.00,salary
2025-01-02,Bookstore,-19.99,
,,,
"""

DEBIT_CREDIT_CSV = b"""Txn Date,Narration,Debit Amount,Credit Amount,Ref No
03/01/2025,ATM withdrawal,500.00,,A1
04/01/2025,Salary credit,,"1,250.00",A2
"""


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.50", 12.5),
        ("-4.50", -4.5),
        ("1,234.56", 1234.56),
        ("1.234,56", 1234.56),
        ("−50,00", -50.0),
        ("(12.00)", -12.0),
        ("€ 9.99", 9.99),
        ("1,234", 1234.0),
        ("", None),
        ("n/a", None),
    ],
)
def test_parse_amount(raw, expected) -> None:
    assert parse_amount(raw) == expected


def test_detect_columns_prefers_debit_credit_and_skips_substring_traps() -> None:
    mapping = detect_columns(
        ["Txn Date", "Description", "Debit Amount", "Credit Amount", "Ref No"]
    )
    assert mapping.date == "Txn Date"
    assert mapping.description == "Description"
    assert mapping.debit == "Debit Amount"
    assert mapping.credit == "Credit Amount"
    assert mapping.amount is None


def test_detect_columns_signed_amount() -> None:
    mapping = detect_columns(["Date", "Description", "Amount", "Category", "Type"])
    assert mapping.amount == "Amount"
    assert mapping.category == "Category"
    assert mapping.type == "Type"
    assert mapping.debit is None and mapping.credit is None


def test_preview_reports_headers_rows_and_mapping() -> None:
    preview = preview_csv(SIGNED_CSV)
    assert preview.headers == ["Date", "Description", "Amount", "Category"]
    assert preview.total_rows == 4
    assert preview.rows[0]["Description"] == "Coffee Shop"
    assert preview.detected_columns.amount == "Amount"
    assert preview.error is None


def test_preview_of_empty_file_reports_error() -> None:
    preview = preview_csv(b"")
    assert preview.total_rows == 0
    assert preview.error


def test_import_signed_amounts(store: TransactionStore) -> None:
    result = import_csv(store, "u", SIGNED_CSV)

    assert result.processed == 3
    assert result.skipped == 1
    assert result.errors == 0

    timeline = store.list_by_user("u")
    assert [tx.description for tx in timeline] == ["Coffee Shop", "Bookstore", "ACME Payroll"]
    coffee, book, payroll = timeline
    assert coffee.type is TransactionType.EXPENSE and coffee.amount == 4.5
    assert payroll.type is TransactionType.INCOME and payroll.category == "salary"
    assert book.category == "Uncategorized"
    assert coffee.timestamp == datetime(2025, 1, 3)


def test_import_skips_duplicates_on_reimport(store: TransactionStore) -> None:
    import_csv(store, "u", SIGNED_CSV)
    again = import_csv(store, "u", SIGNED_CSV)

    assert again.processed == 0
    assert again.duplicates == 3
    assert store.count_by_user("u") == 3


def test_import_debit_credit_columns(store: TransactionStore) -> None:
    result = import_csv(store, "u", DEBIT_CREDIT_CSV)

    assert result.processed == 2
    by_desc = {tx.description: tx for tx in store.list_by_user("u")}
    assert by_desc["ATM withdrawal"].type is TransactionType.EXPENSE
    assert by_desc["ATM withdrawal"].amount == 500.0
    assert by_desc["Salary credit"].type is TransactionType.INCOME
    assert by_desc["Salary credit"].amount == 1250.0


def test_import_counts_bad_rows_without_failing(store: TransactionStore) -> None:
    data = b"Date,Description,Amount\nnot a date,Broken,-3\n2025-02-01,Fine,-3\n2025-02-02,No amount,\n"
    result = import_csv(store, "u", data)

    assert result.processed == 1
    assert result.errors == 2
    assert [tx.description for tx in store.list_by_user("u")] == ["Fine"]


def test_import_with_explicit_mapping(store: TransactionStore) -> None:
    data = b"when,what,value,kind\n2025-05-01,Refund,12.00,credit\n"
    mapping = ColumnMapping(date="when", description="what", amount="value", type="kind")
    result = import_csv(store, "u", data, mapping)

    assert result.processed == 1
    assert store.list_by_user("u")[0].type is TransactionType.INCOME


def test_upload_routes(client: TestClient, user_headers) -> None:
    files = {"csv_file": ("statement.csv", SIGNED_CSV, "text/csv")}

    preview = client.post("/api/transactions/import/preview", files=files, headers=user_headers)
    assert preview.status_code == 200
    assert preview.json()["totalRows"] == 4
    assert preview.json()["detectedColumns"]["amount"] == "Amount"

    imported = client.post("/api/transactions/import", files=files, headers=user_headers)
    assert imported.status_code == 200
    body = imported.json()
    assert body["processed"] == 3
    assert all(tx["userId"] == "user-1" for tx in body["transactions"])

    listing = client.get("/api/transactions", headers=user_headers).json()
    assert listing["total"] == 3


def test_upload_with_mapping_form_field(client: TestClient, user_headers) -> None:
    data = b"when,what,value\n2025-05-01,Gift,-7\n"
    resp = client.post(
        "/api/transactions/import",
        files={"csv_file": ("s.csv", data, "text/csv")},
        data={"mapping": json.dumps({"date": "when", "description": "what", "amount": "value"})},
        headers=user_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["processed"] == 1

    bad = client.post(
        "/api/transactions/import",
        files={"csv_file": ("s.csv", data, "text/csv")},
        data={"mapping": "{not json"},
        headers=user_headers,
    )
    assert bad.status_code == 400


def test_upload_empty_file_is_rejected(client: TestClient, user_headers) -> None:
    resp = client.post(
        "/api/transactions/import",
        files={"csv_file": ("empty.csv", b"", "text/csv")},
        headers=user_headers,
    )
    assert resp.status_code == 400


def test_import_fills_blank_categories_from_description(store: TransactionStore) -> None:
    data = (
        b"Date,Description,Amount,Category\n"
        b"2025-03-01,NETFLIX.COM 0412,-15.99,\n"
        b"2025-03-02,Shell station A9,-60.00,\n"
        b"2025-03-03,ACME payroll March,3100.00,\n"
        b"2025-03-04,Transfer from J. Doe,50.00,\n"
        b"2025-03-05,Starbucks,-4.20,treats\n"
    )
    import_csv(store, "u", data)

    by_desc = {tx.description: tx.category for tx in store.list_by_user("u")}
    assert by_desc == {
        "NETFLIX.COM 0412": "Subscriptions",
        "Shell station A9": "Fuel",
        "ACME payroll March": "Income",
        "Transfer from J. Doe": "Income",
        "Starbucks": "treats",
    }
    assert [tx.description for tx in store.list_by_user_and_category("u", "Fuel")] == ["Shell station A9"]


def test_import_counts_repeated_rows_within_one_file(store: TransactionStore) -> None:
    data = (
        b"Date,Description,Amount\n"
        b"2025-06-01,Parking,-3.00\n"
        b"2025-06-01,Parking,-3.00\n"
        b"2025-06-02,Parking,-3.00\n"
    )
    result = import_csv(store, "u", data)

    assert result.processed == 2
    assert result.duplicates == 1
    assert [tx.id for tx in result.transactions] == [tx.id for tx in store.list_by_user("u")][::-1]


def test_import_inserts_nothing_when_the_batch_fails(
    store: TransactionStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fail(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(store, "create_many", fail)
    with pytest.raises(RuntimeError):
        import_csv(store, "u", SIGNED_CSV)
    assert store.count_by_user("u") == 0
