"""
Market data providers - current quotes for signal generation.

Purpose: Produce one MarketSnapshot per ticker per cycle.
Fail closed: a quote that cannot be derived raises QuoteUnavailable, which the
scheduler turns into a failed result for that agent only.
"""
import logging
from dataclasses import replace
from typing import Dict, Optional, Protocol, runtime_checkable

import httpx

from .schemas import MarketSnapshot, utcnow
from ..config import EngineConfig
from ..errors import QuoteUnavailable
from ..resilience import RetryConfig, is_retryable_status, with_retry

logger = logging.getLogger("agent_trader.agents.market_data")


@runtime_checkable
class MarketDataProvider(Protocol):

    async def get_quote(self, ticker: str) -> MarketSnapshot:
        """Current snapshot for ticker. Raises QuoteUnavailable."""
        ...


class TransientHTTPError(Exception):
    """Rate-limited or 5xx response worth retrying."""

    def __init__(self, status_code: int, path: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} from {path}")


class PolygonMarketData:
    """
    Polygon REST quote provider.

    Combines the last trade (/v2/last/trade/{ticker}) with the previous-day
    aggregate (/v2/aggs/ticker/{ticker}/prev). The aggregate is required; the
    last trade is optional and the previous close stands in for it.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.polygon.io",
        timeout_seconds: float = 10.0,
        retry: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        retry = retry or RetryConfig()
        self.retry = replace(
            retry, retryable_exceptions=tuple(retry.retryable_exceptions) + (TransientHTTPError,)
        )
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)

    @classmethod
    def from_config(cls, config: EngineConfig) -> "PolygonMarketData":
        return cls(
            api_key=config.polygon_api_key,
            base_url=config.polygon_base_url,
            timeout_seconds=config.quote_timeout_seconds,
            retry=RetryConfig(max_attempts=config.quote_max_attempts),
        )

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def _get_json(self, path: str) -> dict:
        async def _request() -> dict:
            response = await self.client.get(path, params={"apiKey": self.api_key})
            if is_retryable_status(response.status_code):
                raise TransientHTTPError(response.status_code, path)
            response.raise_for_status()
            return response.json()

        return await with_retry(_request, label=f"GET {path}", config=self.retry)

    async def _last_price(self, ticker: str) -> float:
        """Last trade price, or 0.0 when the endpoint is unavailable."""
        try:
            data = await self._get_json(f"/v2/last/trade/{ticker}")
        except (httpx.HTTPError, TransientHTTPError, ValueError) as e:
            logger.warning(f"Last trade unavailable for {ticker}, using previous close: {e}")
            return 0.0

        last = data.get("last") or {}
        results = data.get("results") or {}
        price = last.get("price") or results.get("p") or 0.0
        return float(price)

    async def get_quote(self, ticker: str) -> MarketSnapshot:
        ticker = ticker.upper().strip()
        try:
            prev_day = await self._get_json(f"/v2/aggs/ticker/{ticker}/prev")
        except (httpx.HTTPError, TransientHTTPError) as e:
            raise QuoteUnavailable(ticker, str(e)) from e
        except ValueError as e:
            raise QuoteUnavailable(ticker, f"invalid JSON: {e}") from e

        bars = prev_day.get("results") or []
        if not bars:
            raise QuoteUnavailable(ticker, "no previous-day bar")

        prev = bars[0]
        prev_close = float(prev.get("c") or 0.0)
        if prev_close <= 0:
            raise QuoteUnavailable(ticker, "previous close missing")

        price = await self._last_price(ticker) or prev_close
        change = price - prev_close

        return MarketSnapshot(
            ticker=ticker,
            price=price,
            change=change,
            change_percent=change / prev_close * 100,
            volume=float(prev.get("v") or 0),
            high=float(prev.get("h") or price),
            low=float(prev.get("l") or price),
            open=float(prev.get("o") or price),
            previous_close=prev_close,
            timestamp=utcnow(),
        )


class StaticMarketData:
    """Serves fixed snapshots by ticker. Used for tests and offline runs."""

    def __init__(self, snapshots: Optional[Dict[str, MarketSnapshot]] = None):
        self.snapshots: Dict[str, MarketSnapshot] = {}
        for snapshot in (snapshots or {}).values():
            self.set(snapshot)

    def set(self, snapshot: MarketSnapshot):
        self.snapshots[snapshot.ticker] = snapshot

    async def get_quote(self, ticker: str) -> MarketSnapshot:
        snapshot = self.snapshots.get(ticker.upper().strip())
        if snapshot is None:
            raise QuoteUnavailable(ticker, "no static snapshot")
        return snapshot.model_copy(update={"timestamp": utcnow()})

    async def aclose(self):
        pass
