"""On-chain / hybrid venue adapters (Hyperliquid, Paradex, Lighter).

All three fund hourly. Hyperliquid reports the hourly rate directly;
Paradex and Lighter report an 8h-equivalent rate, which is divided by 8 to
recover the hourly raw rate so that normalization maps it back unchanged.
"""

from decimal import Decimal
from typing import Any

import aiohttp

from fundingarb.exchange.base import CcxtAdapter, ExchangeAdapter, next_top_of_hour, to_decimal
from fundingarb.models import Exchange, RawObservation

_HOURLY = Decimal("1")
_EIGHT = Decimal("8")

LIGHTER_FUNDING_URL = "https://mainnet.zklighter.elliot.ai/api/v1/funding-rates"


class HyperliquidAdapter(CcxtAdapter):
    """``metaAndAssetCtxs`` returns [meta, ctxs]; universe[i] pairs with ctxs[i]."""

    exchange = Exchange.HYPERLIQUID
    ccxt_id = "hyperliquid"

    async def fetch_payload(self) -> list:
        return await self.client.publicPostInfo({"type": "metaAndAssetCtxs"})

    def parse(self, payload: list, now_ms: int) -> list[RawObservation]:
        meta, ctxs = payload[0], payload[1]
        next_funding = next_top_of_hour(now_ms)

        results: list[RawObservation] = []
        for asset, ctx in zip(meta.get("universe", []), ctxs):
            name = asset.get("name")
            rate = to_decimal(ctx.get("funding"))
            if not name or rate is None:
                self._skip(asset)
                continue
            results.append(self._observation(name, rate, _HOURLY, next_funding))
        return results


class ParadexAdapter(CcxtAdapter):
    """Markets summary; continuous funding treated as hourly."""

    exchange = Exchange.PARADEX
    ccxt_id = "paradex"

    async def fetch_payload(self) -> dict:
        return await self.client.publicGetMarketsSummary({"market": "ALL"})

    def parse(self, payload: dict, now_ms: int) -> list[RawObservation]:
        next_funding = next_top_of_hour(now_ms)

        results: list[RawObservation] = []
        for item in payload.get("results") or []:
            symbol = item.get("symbol")
            rate_8h = to_decimal(item.get("funding_rate"))
            if not symbol or rate_8h is None:
                self._skip(item)
                continue
            results.append(
                self._observation(symbol, rate_8h / _EIGHT, _HOURLY, next_funding)
            )
        return results


class LighterAdapter(ExchangeAdapter):
    """Lighter public REST API (not covered by ccxt), fetched with aiohttp.

    The funding-rates endpoint also mirrors other venues' rates; only entries
    tagged as Lighter's own (or untagged) are kept.

    Args:
        session: Shared aiohttp session. If omitted, one is created on first
            use and closed by close().
        timeout_ms: Total request timeout.
    """

    exchange = Exchange.LIGHTER

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout_ms: int = 10000,
        url: str = LIGHTER_FUNDING_URL,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        self._url = url

    async def fetch_payload(self) -> dict:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        async with self._session.get(self._url, timeout=self._timeout) as resp:
            resp.raise_for_status()
            return await resp.json()

    def parse(self, payload: dict, now_ms: int) -> list[RawObservation]:
        next_funding = next_top_of_hour(now_ms)

        results: list[RawObservation] = []
        for item in payload.get("funding_rates") or []:
            source = str(item.get("exchange", "lighter")).lower()
            if source != "lighter":
                continue
            symbol = item.get("symbol")
            rate_8h = to_decimal(item.get("rate"))
            if not symbol or rate_8h is None:
                self._skip(item)
                continue
            results.append(
                self._observation(symbol, rate_8h / _EIGHT, _HOURLY, next_funding)
            )
        return results

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
