# routes_upload.py
"""
Routes for the CSV upload flow: preview (detect columns, show first rows)
and import (write the rows as transactions for the caller).
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError as SchemaValidationError

from app.deps import get_current_user_id, get_store
from app.logging_setup import get_logger
from app.schemas import ColumnMapping, CsvPreview, ImportResult
from app.services.csv_import import import_csv, preview_csv
from app.services.transaction_store import TransactionStore

router = APIRouter(prefix="/api/transactions/import", tags=["import"])

logger = get_logger("stash.routes.upload")


@router.post("/preview", response_model=CsvPreview)
async def upload_preview(
    csv_file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
):
    """
    Step 1: parse the uploaded CSV and report headers, the first rows and
    the detected column mapping. Nothing is written.
    """
    data = await csv_file.read()
    return preview_csv(data)


@router.post("", response_model=ImportResult)
async def upload_import(
    csv_file: UploadFile = File(...),
    mapping: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    """
    Step 2: import every row. `mapping` is an optional JSON ColumnMapping
    (e.g. edited from the preview); without it columns are auto-detected.
    """
    column_mapping = None
    if mapping:
        try:
            column_mapping = ColumnMapping.model_validate_json(mapping)
        except SchemaValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid column mapping: {e}") from e

    data = await csv_file.read()
    try:
        return import_csv(store, user_id, data, column_mapping)
    except ValueError as e:
        logger.info("csv import rejected for user_id=%s: %s", user_id, e)
        raise HTTPException(status_code=400, detail=f"Could not read CSV: {e}") from e
