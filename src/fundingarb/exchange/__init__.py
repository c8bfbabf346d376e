"""Exchange adapter layer -- native funding-rate responses to RawObservation lists."""

from fundingarb.exchange.base import CcxtAdapter, ExchangeAdapter
from fundingarb.exchange.cex import (
    BinanceAdapter,
    BitgetAdapter,
    BybitAdapter,
    GateAdapter,
    OKXAdapter,
)
from fundingarb.exchange.dex import HyperliquidAdapter, LighterAdapter, ParadexAdapter
from fundingarb.exchange.registry import build_adapters

__all__ = [
    "BinanceAdapter",
    "BitgetAdapter",
    "BybitAdapter",
    "CcxtAdapter",
    "ExchangeAdapter",
    "GateAdapter",
    "HyperliquidAdapter",
    "LighterAdapter",
    "OKXAdapter",
    "ParadexAdapter",
    "build_adapters",
]
