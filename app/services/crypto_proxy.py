# filename: app/services/crypto_proxy.py
"""
Read-through client for the CoinGecko market-data API.

Design goals:
- Safe: public methods never raise to callers; upstream failures come back
  as an empty list / None, which callers must read as "unknown"
- Bounded: every call uses a fixed timeout (15 s by default), no retries
- Honest: numeric fields missing upstream stay None instead of becoming 0

Public API:
    CryptoProxy.fetch_top_markets(limit) -> list[MarketSnapshot]
    CryptoProxy.fetch_fundamentals(coin_id) -> MarketDetail | None
"""

from __future__ import annotations

import math
from typing import Any, Optional

import httpx
from pydantic import ValidationError as SchemaError

from app.config import DEFAULT_COINGECKO_BASE_URL, DEFAULT_CRYPTO_TIMEOUT_SECONDS
from app.errors import UpstreamUnavailable
from app.logging_setup import get_logger
from app.schemas import MarketDetail, MarketSnapshot

logger = get_logger("stash.crypto")

MAX_MARKETS_LIMIT = 250
_CHANGE_WINDOWS = "24h,7d,30d"


def _num(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and inf are not valid JSON numbers
    return number if math.isfinite(number) else None


def _int(value: Any) -> Optional[int]:
    number = _num(value)
    return None if number is None else int(number)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _usd(block: Any, key: str) -> Optional[float]:
    """market_data[key]["usd"] when present."""
    if not isinstance(block, dict):
        return None
    inner = block.get(key)
    if isinstance(inner, dict):
        return _num(inner.get("usd"))
    return None


def _first(values: Any) -> str:
    if isinstance(values, list):
        for v in values:
            if v:
                return str(v)
    return ""


def _snapshot_from_market(coin: dict, sparkline: list[float]) -> MarketSnapshot:
    return MarketSnapshot(
        id=str(coin.get("id") or ""),
        symbol=str(coin.get("symbol") or "").upper(),
        name=str(coin.get("name") or ""),
        image=_text(coin.get("image")),
        current_price=_num(coin.get("current_price")),
        market_cap=_num(coin.get("market_cap")),
        market_cap_rank=_int(coin.get("market_cap_rank")),
        fully_diluted_valuation=_num(coin.get("fully_diluted_valuation")),
        total_volume=_num(coin.get("total_volume")),
        high_24h=_num(coin.get("high_24h")),
        low_24h=_num(coin.get("low_24h")),
        price_change_24h=_num(coin.get("price_change_24h")),
        price_change_percentage_24h=_num(coin.get("price_change_percentage_24h")),
        price_change_percentage_7d=_num(coin.get("price_change_percentage_7d_in_currency")),
        price_change_percentage_30d=_num(coin.get("price_change_percentage_30d_in_currency")),
        circulating_supply=_num(coin.get("circulating_supply")),
        total_supply=_num(coin.get("total_supply")),
        max_supply=_num(coin.get("max_supply")),
        ath=_num(coin.get("ath")),
        ath_change_percentage=_num(coin.get("ath_change_percentage")),
        ath_date=_text(coin.get("ath_date")),
        atl=_num(coin.get("atl")),
        atl_change_percentage=_num(coin.get("atl_change_percentage")),
        atl_date=_text(coin.get("atl_date")),
        sparkline=sparkline,
        last_updated=_text(coin.get("last_updated")),
    )


def _sparkline(coin: dict) -> list[float]:
    block = coin.get("sparkline_in_7d")
    prices = block.get("price") if isinstance(block, dict) else None
    if not isinstance(prices, list):
        return []
    return [p for p in (_num(v) for v in prices) if p is not None]


def _detail_from_coin(data: dict) -> MarketDetail:
    market = data.get("market_data") if isinstance(data.get("market_data"), dict) else {}
    links = data.get("links") if isinstance(data.get("links"), dict) else {}
    description = data.get("description")
    repos = links.get("repos_url") if isinstance(links.get("repos_url"), dict) else {}

    return MarketDetail(
        id=str(data.get("id") or ""),
        symbol=str(data.get("symbol") or "").upper(),
        name=str(data.get("name") or ""),
        description=(_text(description.get("en")) or "") if isinstance(description, dict) else "",
        market_cap=_usd(market, "market_cap"),
        fully_diluted_valuation=_usd(market, "fully_diluted_valuation"),
        total_volume=_usd(market, "total_volume"),
        circulating_supply=_num(market.get("circulating_supply")),
        total_supply=_num(market.get("total_supply")),
        max_supply=_num(market.get("max_supply")),
        current_price=_usd(market, "current_price"),
        price_change_24h=_num(market.get("price_change_24h")),
        price_change_percentage_24h=_num(market.get("price_change_percentage_24h")),
        high_24h=_usd(market, "high_24h"),
        low_24h=_usd(market, "low_24h"),
        ath=_usd(market, "ath"),
        ath_change_percentage=_usd(market, "ath_change_percentage"),
        atl=_usd(market, "atl"),
        atl_change_percentage=_usd(market, "atl_change_percentage"),
        market_cap_rank=_int(data.get("market_cap_rank")),
        homepage=_first(links.get("homepage")),
        blockchain_site=_first(links.get("blockchain_site")),
        github=_first(repos.get("github")),
        twitter=str(links.get("twitter_screen_name") or ""),
        subreddit=str(links.get("subreddit_url") or ""),
        last_updated=_text(data.get("last_updated")),
    )


class CryptoProxy:
    """Thin wrapper around one httpx.Client; owns the client unless one is passed in."""

    def __init__(
        self,
        base_url: str = DEFAULT_COINGECKO_BASE_URL,
        timeout: float = DEFAULT_CRYPTO_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"timeout after {self.timeout}s: GET {path}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(f"HTTP {e.response.status_code}: GET {path}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{type(e).__name__}: GET {path}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"invalid JSON: GET {path}") from e

    def fetch_top_markets(self, limit: int = 20) -> list[MarketSnapshot]:
        """Top coins by market cap, with 7-day sparklines. Empty list when upstream fails."""
        limit = max(1, min(int(limit), MAX_MARKETS_LIMIT))
        try:
            coins = self._get_json(
                "/coins/markets",
                {
                    "vs_currency": "usd",
                    "order": "market_cap_desc",
                    "per_page": limit,
                    "page": 1,
                    "sparkline": "true",
                    "price_change_percentage": _CHANGE_WINDOWS,
                },
            )
        except UpstreamUnavailable as e:
            logger.warning("top markets unavailable: %s", e)
            return []

        if not isinstance(coins, list):
            logger.warning("top markets: unexpected payload type %s", type(coins).__name__)
            return []

        markets = []
        for coin in coins:
            if not isinstance(coin, dict) or not coin.get("id"):
                continue
            try:
                markets.append(_snapshot_from_market(coin, _sparkline(coin)))
            except SchemaError as e:
                logger.warning("top markets: skipping malformed coin %r: %s", coin.get("id"), e)
        return markets

    def fetch_fundamentals(self, coin_id: str) -> MarketDetail | None:
        """Detail view for one coin. None when unknown or upstream fails."""
        coin_id = (coin_id or "").strip().lower()
        if not coin_id:
            return None
        try:
            data = self._get_json(
                f"/coins/{coin_id}",
                {
                    "localization": "false",
                    "tickers": "false",
                    "market_data": "true",
                    "community_data": "true",
                    "developer_data": "true",
                    "sparkline": "true",
                },
            )
        except UpstreamUnavailable as e:
            logger.warning("fundamentals unavailable for %s: %s", coin_id, e)
            return None

        if not isinstance(data, dict) or not data.get("id"):
            return None
        try:
            return _detail_from_coin(data)
        except SchemaError as e:
            logger.warning("fundamentals for %s: malformed payload: %s", coin_id, e)
            return None
