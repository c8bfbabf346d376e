"""Exchange adapter interface.

Every exchange hands the core the same thing: a list of RawObservation.
Adapters split retrieval (``fetch_payload``, I/O) from parsing (``parse``,
pure) so the native response shapes can be tested without a network.

``fetch_observations`` never raises: a failed exchange contributes an empty
list and the poll cycle carries on with the others.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

import ccxt.async_support as ccxt_async

from fundingarb.logging import get_logger
from fundingarb.models import Exchange, RawObservation

logger = get_logger(__name__)

HOUR_MS = 3_600_000
DEFAULT_INTERVAL_HOURS = Decimal("8")


def to_decimal(value: Any) -> Decimal | None:
    """Parse a numeric field (str, int or float) into Decimal, or None."""
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def interval_or_default(value: Any, default: Decimal = DEFAULT_INTERVAL_HOURS) -> Decimal:
    """Parse a funding interval in hours; missing, zero or garbage -> default."""
    hours = to_decimal(value)
    if hours is None or hours <= 0:
        return default
    return hours


def next_top_of_hour(now_ms: int) -> int:
    """Epoch ms of the next full UTC hour after ``now_ms``."""
    return (now_ms // HOUR_MS + 1) * HOUR_MS


class ExchangeAdapter(ABC):
    """Abstract funding-rate source for one exchange.

    Subclasses set the ``exchange`` tag and implement retrieval and parsing.
    """

    exchange: ClassVar[Exchange]

    @abstractmethod
    async def fetch_payload(self) -> Any:
        """Retrieve the exchange's native funding-rate response."""
        ...

    @abstractmethod
    def parse(self, payload: Any, now_ms: int) -> list[RawObservation]:
        """Convert a native response into raw observations.

        Entries that cannot be parsed are skipped.
        """
        ...

    async def fetch_observations(self) -> list[RawObservation]:
        """Fetch and parse, degrading to an empty list on any failure."""
        try:
            payload = await self.fetch_payload()
            observations = self.parse(payload, int(time.time() * 1000))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "exchange_fetch_failed",
                exchange=self.exchange.value,
                error=str(e),
                exc_info=True,
            )
            return []

        logger.debug(
            "exchange_fetched",
            exchange=self.exchange.value,
            count=len(observations),
        )
        return observations

    async def close(self) -> None:
        """Release transport resources, if any."""

    def _skip(self, item: Any) -> None:
        logger.debug("funding_entry_skipped", exchange=self.exchange.value, entry=item)

    def _observation(
        self,
        raw_symbol: str,
        raw_rate: Decimal,
        interval_hours: Decimal,
        next_funding_time: int | None,
    ) -> RawObservation:
        return RawObservation(
            exchange=self.exchange,
            raw_symbol=raw_symbol,
            raw_rate=raw_rate,
            interval_hours=interval_hours,
            next_funding_time=next_funding_time or None,
        )


class CcxtAdapter(ExchangeAdapter):
    """Adapter backed by a ccxt async exchange instance.

    Uses ccxt's implicit raw endpoints so the exchange-native symbols and
    funding fields reach ``parse`` unchanged.

    Args:
        client: Pre-built ccxt exchange (tests inject a mock). If omitted,
            one is created on first use and closed by close().
        timeout_ms: Request timeout passed to ccxt.
    """

    ccxt_id: ClassVar[str]

    def __init__(self, client: Any = None, timeout_ms: int = 10000) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout_ms = timeout_ms

    @property
    def client(self) -> Any:
        """The underlying ccxt exchange instance."""
        if self._client is None:
            exchange_class = getattr(ccxt_async, self.ccxt_id)
            self._client = exchange_class({
                "enableRateLimit": True,
                "timeout": self._timeout_ms,
            })
        return self._client

    async def close(self) -> None:
        """Close the ccxt session. CRITICAL: ccxt async leaks sessions otherwise."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
