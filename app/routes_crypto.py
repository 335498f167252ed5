# routes_crypto.py
"""
Routes exposing the crypto market proxy. Upstream trouble shows up as an
empty list / 404, never as a 5xx.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.deps import get_crypto_proxy
from app.schemas import MarketDetail, MarketSnapshot
from app.services.crypto_proxy import CryptoProxy

router = APIRouter(prefix="/api/crypto", tags=["crypto"])


@router.get("/top", response_model=list[MarketSnapshot])
def top_cryptos(
    limit: int = Query(20, ge=1, le=250),
    crypto: CryptoProxy = Depends(get_crypto_proxy),
):
    return crypto.fetch_top_markets(limit)


@router.get("/fundamentals/{coin_id}", response_model=MarketDetail)
def crypto_fundamentals(
    coin_id: str,
    crypto: CryptoProxy = Depends(get_crypto_proxy),
):
    detail = crypto.fetch_fundamentals(coin_id)
    if detail is None:
        return JSONResponse(status_code=404, content={"message": "Crypto not found"})
    return detail
