"""Alert throttle -- decides when a wide spread is worth a notification.

Per symbol, evaluated once per poll cycle for spreads above the threshold:

  1. No state, or last alert older than the window -> STANDARD, persist.
  2. Within the window, spread >= last_spread + escalation -> HIGH, persist.
  3. Otherwise -> no alert, state untouched.

Spreads at or below the threshold never read or write state, so a symbol
that dips and comes back is still governed by its old state until that
ages past the window. State is written with a store TTL (24h by default)
that is independent of the window.

The read-then-write per symbol is not atomic. Two overlapping evaluations of
the same symbol can both see stale state and both alert; callers must
serialize evaluation (FundingScanner runs cycles under a lock).
"""

import time
from collections.abc import Callable
from decimal import Decimal

from fundingarb.alerts.store import AlertStateStore
from fundingarb.config import AlertSettings
from fundingarb.logging import get_logger
from fundingarb.models import AlertPriority, AlertState, OpportunityRecord

logger = get_logger(__name__)

STATE_KEY_PREFIX = "alert:"


def state_key(symbol: str) -> str:
    """Store key for a symbol's throttle state."""
    return f"{STATE_KEY_PREFIX}{symbol}"


def decide(
    state: AlertState | None,
    spread: Decimal,
    now_ms: int,
    window_ms: int,
    escalation_delta: Decimal,
) -> AlertPriority | None:
    """Pure transition function of the throttle state machine.

    Assumes ``spread`` already exceeds the alert threshold.
    """
    if state is None or now_ms - state.timestamp > window_ms:
        return AlertPriority.STANDARD
    if spread >= state.last_spread + escalation_delta:
        return AlertPriority.HIGH
    return None


class AlertThrottle:
    """Applies the throttle state machine against a persisted state store.

    Args:
        store: Alert state store (get / set-with-TTL).
        settings: Threshold, window, escalation and TTL parameters.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        store: AlertStateStore,
        settings: AlertSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock

    def qualifies(self, opportunity: OpportunityRecord) -> bool:
        """Whether the spread is strictly above the alert threshold."""
        return opportunity.delta_spread_8h > self._settings.threshold

    async def evaluate(
        self, opportunity: OpportunityRecord, now_ms: int | None = None
    ) -> AlertPriority | None:
        """Run one throttle step for an opportunity.

        Returns the alert priority to emit, or None. Opportunities at or below
        threshold return None without touching the store. A store failure is
        logged and the symbol is skipped (None) for this cycle.
        """
        if not self.qualifies(opportunity):
            return None

        if now_ms is None:
            now_ms = int(self._clock() * 1000)

        symbol = opportunity.symbol
        spread = opportunity.delta_spread_8h
        key = state_key(symbol)

        try:
            state = await self._store.get(key)
            priority = decide(
                state,
                spread,
                now_ms,
                self._settings.window_ms,
                self._settings.escalation_delta,
            )
            if priority is None:
                logger.debug(
                    "alert_throttled",
                    symbol=symbol,
                    spread=str(spread),
                    last_spread=str(state.last_spread) if state else None,
                )
                return None

            await self._store.set(
                key,
                AlertState(timestamp=now_ms, last_spread=spread),
                ttl_seconds=self._settings.state_ttl_seconds,
            )
        except Exception as e:
            logger.warning(
                "alert_state_store_failed",
                symbol=symbol,
                error=str(e),
            )
            return None

        logger.info(
            "alert_triggered",
            symbol=symbol,
            priority=priority.value,
            spread=str(spread),
        )
        return priority

    async def purge_expired(self) -> int:
        """Drop expired throttle state from the store.

        A store failure is logged and reported as zero rows removed.
        """
        try:
            removed = await self._store.purge_expired()
        except Exception as e:
            logger.warning("alert_state_purge_failed", error=str(e))
            return 0
        if removed:
            logger.debug("alert_state_expired", removed=removed)
        return removed
