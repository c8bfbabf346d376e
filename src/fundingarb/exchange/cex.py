"""Centralized exchange adapters (Binance, Bybit, Bitget, Gate, OKX) via ccxt.

Funding conventions differ per venue:
- Binance: most symbols settle every 8h; exceptions are listed in fundingInfo.
- Bybit / Bitget: interval in hours is reported per symbol.
- Gate: interval in seconds; funding_next_apply is sometimes in the past.
- OKX: one request per instrument; interval derived from the two
  settlement timestamps.
"""

import asyncio
from decimal import Decimal
from typing import Any

from fundingarb.exchange.base import (
    DEFAULT_INTERVAL_HOURS,
    CcxtAdapter,
    interval_or_default,
    to_decimal,
)
from fundingarb.logging import get_logger
from fundingarb.models import Exchange, RawObservation

logger = get_logger(__name__)

_SECONDS_PER_HOUR = Decimal("3600")
_GATE_DEFAULT_INTERVAL_S = 28800


def _int_or_none(value: Any) -> int | None:
    parsed = to_decimal(value)
    return int(parsed) if parsed is not None else None


class BinanceAdapter(CcxtAdapter):
    """USDT-M futures: premiumIndex for rates, fundingInfo for non-8h intervals."""

    exchange = Exchange.BINANCE
    ccxt_id = "binanceusdm"

    async def fetch_payload(self) -> dict[str, list[dict]]:
        funding_info, premium_index = await asyncio.gather(
            self.client.fapiPublicGetFundingInfo(),
            self.client.fapiPublicGetPremiumIndex(),
        )
        return {"funding_info": funding_info, "premium_index": premium_index}

    def parse(self, payload: dict[str, list[dict]], now_ms: int) -> list[RawObservation]:
        intervals: dict[str, Decimal] = {
            item["symbol"]: interval_or_default(item.get("fundingIntervalHours"))
            for item in payload.get("funding_info", [])
            if item.get("symbol")
        }

        results: list[RawObservation] = []
        for item in payload.get("premium_index", []):
            symbol = item.get("symbol")
            rate = to_decimal(item.get("lastFundingRate"))
            if not symbol or rate is None:
                self._skip(item)
                continue
            results.append(
                self._observation(
                    symbol,
                    rate,
                    intervals.get(symbol, DEFAULT_INTERVAL_HOURS),
                    _int_or_none(item.get("nextFundingTime")),
                )
            )
        return results


class BybitAdapter(CcxtAdapter):
    """Linear tickers carry fundingRate and fundingIntervalHour per symbol."""

    exchange = Exchange.BYBIT
    ccxt_id = "bybit"

    async def fetch_payload(self) -> dict:
        return await self.client.publicGetV5MarketTickers({"category": "linear"})

    def parse(self, payload: dict, now_ms: int) -> list[RawObservation]:
        items = (payload.get("result") or {}).get("list") or []
        results: list[RawObservation] = []
        for item in items:
            symbol = item.get("symbol")
            rate = to_decimal(item.get("fundingRate"))
            if not symbol or rate is None:
                self._skip(item)
                continue
            results.append(
                self._observation(
                    symbol,
                    rate,
                    interval_or_default(item.get("fundingIntervalHour")),
                    _int_or_none(item.get("nextFundingTime")),
                )
            )
        return results


class BitgetAdapter(CcxtAdapter):
    """USDT-FUTURES current funding rates (v2 mix API)."""

    exchange = Exchange.BITGET
    ccxt_id = "bitget"

    async def fetch_payload(self) -> dict:
        return await self.client.publicMixGetV2MixMarketCurrentFundRate(
            {"productType": "USDT-FUTURES"}
        )

    def parse(self, payload: dict, now_ms: int) -> list[RawObservation]:
        if payload.get("code") != "00000":
            raise ValueError(f"Bitget error response: {payload.get('msg')}")

        results: list[RawObservation] = []
        for item in payload.get("data") or []:
            symbol = item.get("symbol")
            rate = to_decimal(item.get("fundingRate"))
            if not symbol or rate is None:
                self._skip(item)
                continue
            results.append(
                self._observation(
                    symbol,
                    rate,
                    interval_or_default(item.get("fundingRateInterval")),
                    _int_or_none(item.get("nextUpdate")),
                )
            )
        return results


class GateAdapter(CcxtAdapter):
    """USDT-settled futures contracts list (rates and intervals in one call)."""

    exchange = Exchange.GATE
    ccxt_id = "gate"

    async def fetch_payload(self) -> list[dict]:
        return await self.client.publicFuturesGetSettleContracts({"settle": "usdt"})

    def parse(self, payload: list[dict], now_ms: int) -> list[RawObservation]:
        results: list[RawObservation] = []
        for item in payload:
            name = item.get("name")
            rate = to_decimal(item.get("funding_rate"))
            if not name or rate is None:
                self._skip(item)
                continue

            interval_s = _int_or_none(item.get("funding_interval")) or _GATE_DEFAULT_INTERVAL_S
            interval_ms = interval_s * 1000

            next_apply_s = _int_or_none(item.get("funding_next_apply"))
            next_funding_time = next_apply_s * 1000 if next_apply_s else 0
            # Stale next-apply: use the next interval boundary from the epoch.
            if next_funding_time <= now_ms:
                next_funding_time = -(-now_ms // interval_ms) * interval_ms

            results.append(
                self._observation(
                    name,
                    rate,
                    Decimal(interval_s) / _SECONDS_PER_HOUR,
                    next_funding_time,
                )
            )
        return results


class OKXAdapter(CcxtAdapter):
    """Per-instrument funding rates for a configured list of USDT swaps.

    OKX has no bulk funding endpoint, so each instrument is a request; ccxt's
    built-in rate limiter spaces them. Failed instruments are skipped.
    """

    exchange = Exchange.OKX
    ccxt_id = "okx"

    def __init__(
        self,
        inst_ids: list[str],
        client: Any = None,
        timeout_ms: int = 10000,
    ) -> None:
        super().__init__(client=client, timeout_ms=timeout_ms)
        self._inst_ids = list(inst_ids)

    async def fetch_payload(self) -> list[dict]:
        responses = await asyncio.gather(
            *(
                self.client.publicGetPublicFundingRate({"instId": inst_id})
                for inst_id in self._inst_ids
            ),
            return_exceptions=True,
        )

        payload: list[dict] = []
        for inst_id, response in zip(self._inst_ids, responses):
            if isinstance(response, BaseException):
                logger.debug("okx_instrument_failed", inst_id=inst_id, error=str(response))
                continue
            payload.extend(response.get("data") or [])
        return payload

    def parse(self, payload: list[dict], now_ms: int) -> list[RawObservation]:
        results: list[RawObservation] = []
        for item in payload:
            inst_id = item.get("instId")
            rate = to_decimal(item.get("fundingRate"))
            if not inst_id or rate is None:
                self._skip(item)
                continue

            funding_time = _int_or_none(item.get("fundingTime"))
            next_funding_time = _int_or_none(item.get("nextFundingTime"))
            interval = DEFAULT_INTERVAL_HOURS
            if funding_time and next_funding_time and next_funding_time > funding_time:
                interval = Decimal(next_funding_time - funding_time) / Decimal(3_600_000)

            results.append(
                self._observation(
                    inst_id,
                    rate,
                    interval,
                    funding_time or next_funding_time,
                )
            )
        return results
