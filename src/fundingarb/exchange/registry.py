"""Builds exchange adapters from their Exchange tag."""

from collections.abc import Callable

import aiohttp

from fundingarb.config import ScannerSettings
from fundingarb.exchange.base import ExchangeAdapter
from fundingarb.exchange.cex import (
    BinanceAdapter,
    BitgetAdapter,
    BybitAdapter,
    GateAdapter,
    OKXAdapter,
)
from fundingarb.exchange.dex import HyperliquidAdapter, LighterAdapter, ParadexAdapter
from fundingarb.logging import get_logger
from fundingarb.models import Exchange

logger = get_logger(__name__)

AdapterFactory = Callable[[ScannerSettings, aiohttp.ClientSession | None], ExchangeAdapter]

ADAPTER_FACTORIES: dict[Exchange, AdapterFactory] = {
    Exchange.BINANCE: lambda s, _: BinanceAdapter(timeout_ms=s.request_timeout_ms),
    Exchange.BYBIT: lambda s, _: BybitAdapter(timeout_ms=s.request_timeout_ms),
    Exchange.BITGET: lambda s, _: BitgetAdapter(timeout_ms=s.request_timeout_ms),
    Exchange.GATE: lambda s, _: GateAdapter(timeout_ms=s.request_timeout_ms),
    Exchange.OKX: lambda s, _: OKXAdapter(s.okx_symbols, timeout_ms=s.request_timeout_ms),
    Exchange.PARADEX: lambda s, _: ParadexAdapter(timeout_ms=s.request_timeout_ms),
    Exchange.HYPERLIQUID: lambda s, _: HyperliquidAdapter(timeout_ms=s.request_timeout_ms),
    Exchange.LIGHTER: lambda s, session: LighterAdapter(
        session=session, timeout_ms=s.request_timeout_ms
    ),
}


def build_adapters(
    settings: ScannerSettings,
    session: aiohttp.ClientSession | None = None,
) -> list[ExchangeAdapter]:
    """Instantiate one adapter per configured exchange, in configured order.

    Duplicate entries in ``settings.exchanges`` are ignored.
    """
    adapters: list[ExchangeAdapter] = []
    seen: set[Exchange] = set()
    for exchange in settings.exchanges:
        if exchange in seen:
            continue
        seen.add(exchange)
        adapters.append(ADAPTER_FACTORIES[exchange](settings, session))

    logger.info(
        "exchange_adapters_built",
        exchanges=[a.exchange.value for a in adapters],
    )
    return adapters
