# app/deps.py
# Role: Shared FastAPI dependencies.
#       Hands routes the store and the crypto proxy that main.create_app()
#       put on app.state, and resolves the caller's user id.

"""
Shared dependencies for the Stash API.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from app.services.crypto_proxy import CryptoProxy
from app.services.transaction_store import TransactionStore
from db import Database

# -------------------------------------------------------------------
# Database / store
# -------------------------------------------------------------------

def get_database(request: Request) -> Database:
    return request.app.state.database


def get_store(database: Database = Depends(get_database)) -> TransactionStore:
    """
    FastAPI dependency returning a store bound to the app's Database.

    Typical usage in routes:
        store: TransactionStore = Depends(get_store)
    """
    return TransactionStore(database)


def get_crypto_proxy(request: Request) -> CryptoProxy:
    return request.app.state.crypto


# -------------------------------------------------------------------
# Caller identity
# -------------------------------------------------------------------

def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Identity of the authenticated caller.

    Authentication itself happens upstream (gateway / session layer), which
    forwards the verified user id in the X-User-Id header.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="No user identity provided")
    return user_id
