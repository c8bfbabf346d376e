"""Symbol standardization -- maps exchange-native perp symbols to ``{BASE}-PERP``.

Each exchange names the same market differently (``BTCUSDT``, ``BTC_USDT``,
``BTC-USDT-SWAP``, ``BTC-USD-PERP``, ``BTC``). A declarative rule per
exchange describes the accepted quote suffix and which size-multiplier
prefixes to strip, so ``1000PEPEUSDT`` on Binance and ``PEPE`` on
Hyperliquid meet as ``PEPE-PERP``.

Markets that do not match the exchange's quote pattern (inverse contracts,
USDC-margined pairs, ...) map to None and are excluded from comparison.
"""

from dataclasses import dataclass

from fundingarb.models import Exchange

# Longest first: "10000X" must lose "10000", not "1000" (which would leave "0X").
_MULTIPLIER_PREFIXES: tuple[str, ...] = ("10000", "1000")

CANONICAL_SUFFIX = "-PERP"


@dataclass(frozen=True)
class SymbolRule:
    """How to read a base asset out of one exchange's symbol format.

    Attributes:
        quote_suffix: Required suffix, removed to obtain the base. Empty means
            the raw symbol already is the base and always matches.
        strip_prefixes: Size-multiplier prefixes tried in order; at most one
            is removed.
    """

    quote_suffix: str = ""
    strip_prefixes: tuple[str, ...] = _MULTIPLIER_PREFIXES

    def extract_base(self, raw_symbol: str) -> str | None:
        if self.quote_suffix:
            if not raw_symbol.endswith(self.quote_suffix):
                return None
            base = raw_symbol[: -len(self.quote_suffix)]
        else:
            base = raw_symbol

        for prefix in self.strip_prefixes:
            if base.startswith(prefix):
                base = base[len(prefix):]
                break

        return base or None


_USDT_LINEAR = SymbolRule(quote_suffix="USDT")
_BARE_BASE = SymbolRule(quote_suffix="", strip_prefixes=())

SYMBOL_RULES: dict[Exchange, SymbolRule] = {
    Exchange.BINANCE: _USDT_LINEAR,
    Exchange.BYBIT: _USDT_LINEAR,
    Exchange.BITGET: _USDT_LINEAR,
    Exchange.GATE: SymbolRule(quote_suffix="_USDT"),
    Exchange.OKX: SymbolRule(quote_suffix="-USDT-SWAP"),
    Exchange.PARADEX: SymbolRule(quote_suffix="-USD-PERP"),
    Exchange.HYPERLIQUID: _BARE_BASE,
    Exchange.LIGHTER: _BARE_BASE,
}


def standardize(exchange: Exchange | str, raw_symbol: str) -> str | None:
    """Return the canonical ``{BASE}-PERP`` symbol, or None if not applicable.

    Args:
        exchange: Exchange tag (enum member or its string value).
        raw_symbol: Symbol exactly as the exchange reports it.

    Returns:
        Canonical symbol, or None for unknown exchanges, symbols outside the
        exchange's quote pattern, and symbols with no base left after stripping.
    """
    try:
        rule = SYMBOL_RULES.get(Exchange(exchange))
    except ValueError:
        return None
    if rule is None:
        return None

    base = rule.extract_base(raw_symbol)
    if base is None:
        return None
    return f"{base}{CANONICAL_SUFFIX}"
