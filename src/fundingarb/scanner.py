"""Funding spread scanner -- one poll cycle end to end, plus the polling loop.

Each cycle:
  1. COLLECT: fan out one fetch per exchange adapter and wait for all of them
     (a failing exchange contributes an empty list).
  2. AGGREGATE: standardize + normalize, group by symbol, compute spreads,
     rank. Synchronous; any failure aborts the cycle with AggregationError.
  3. ALERT: for spreads above threshold, run the throttle and notify, then
     drop expired throttle state.
  4. DIGEST: send the top-N digest if one is due.

Cycles run under an asyncio.Lock, so API-triggered and scheduled cycles never
overlap and the throttle's read-modify-write per symbol is serialized.
"""

import asyncio
import time
from collections.abc import Callable, Sequence

import structlog

from fundingarb.alerts.formatter import build_notification, format_alert, format_digest
from fundingarb.alerts.notifier import Notifier
from fundingarb.alerts.throttle import AlertThrottle
from fundingarb.config import DigestSettings
from fundingarb.core.aggregator import group
from fundingarb.core.normalizer import normalize_observation
from fundingarb.core.ranker import OpportunityRanker
from fundingarb.core.spread import build_opportunities
from fundingarb.exceptions import AggregationError
from fundingarb.exchange.base import ExchangeAdapter
from fundingarb.logging import get_logger
from fundingarb.models import OpportunityRecord, RawObservation

logger = get_logger(__name__)


class FundingScanner:
    """Runs poll cycles over a set of exchange adapters.

    Args:
        adapters: One adapter per exchange, fetched concurrently.
        ranker: Orders opportunities by spread.
        throttle: Alert throttle; None disables alerting.
        notifier: Message sink for alerts and digests.
        digest_settings: Periodic top-N digest configuration.
        poll_interval: Seconds between cycles in the background loop.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        adapters: Sequence[ExchangeAdapter],
        ranker: OpportunityRanker,
        throttle: AlertThrottle | None = None,
        notifier: Notifier | None = None,
        digest_settings: DigestSettings | None = None,
        poll_interval: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._adapters = list(adapters)
        self._ranker = ranker
        self._throttle = throttle
        self._notifier = notifier
        self._digest_settings = digest_settings or DigestSettings()
        self._poll_interval = poll_interval
        self._clock = clock
        self._cycle_lock = asyncio.Lock()
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._opportunities: list[OpportunityRecord] = []
        self._last_cycle_at: float | None = None
        self._last_digest_at: float | None = None
        self._cycle_count = 0
        self._alerts_sent = 0
        self._last_error: str | None = None

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Begin polling in the background."""
        if self._running:
            logger.warning("scanner_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "scanner_started",
            poll_interval=self._poll_interval,
            exchanges=[a.exchange.value for a in self._adapters],
        )

    async def stop(self) -> None:
        """Stop the polling loop gracefully."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scanner_stopped")

    async def close(self) -> None:
        """Release adapter and notifier resources."""
        for adapter in self._adapters:
            try:
                await adapter.close()
            except Exception as e:
                logger.warning(
                    "adapter_close_failed",
                    exchange=adapter.exchange.value,
                    error=str(e),
                )
        if self._notifier is not None:
            await self._notifier.close()

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("scanner_cycle_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._poll_interval)

    # ──────────────────────────────────────────────
    # Cycle steps
    # ──────────────────────────────────────────────

    async def collect(self) -> list[RawObservation]:
        """Fetch all exchanges concurrently; returns once every fetch finished."""
        results = await asyncio.gather(
            *(adapter.fetch_observations() for adapter in self._adapters)
        )
        observations: list[RawObservation] = []
        for adapter, batch in zip(self._adapters, results):
            if not batch:
                logger.debug("exchange_empty", exchange=adapter.exchange.value)
            observations.extend(batch)
        return observations

    def aggregate(self, observations: Sequence[RawObservation]) -> list[OpportunityRecord]:
        """Normalize, group, compute and rank. All-or-nothing.

        Raises:
            AggregationError: If any step fails; no partial list is returned.
        """
        try:
            normalized = [normalize_observation(raw) for raw in observations]
            groups = group(normalized)
            opportunities = build_opportunities(groups)
            return self._ranker.rank_opportunities(opportunities)
        except Exception as e:
            logger.error("aggregation_failed", error=str(e), exc_info=True)
            raise AggregationError(str(e)) from e

    async def run_cycle(self) -> list[OpportunityRecord]:
        """Run one full poll cycle and return the ranked opportunities.

        Raises:
            AggregationError: If aggregation fails. No alerts are evaluated.
        """
        async with self._cycle_lock:
            self._cycle_count += 1
            with structlog.contextvars.bound_contextvars(cycle=self._cycle_count):
                return await self._run_cycle_locked()

    async def _run_cycle_locked(self) -> list[OpportunityRecord]:
        observations = await self.collect()
        try:
            ranked = self.aggregate(observations)
        except AggregationError as e:
            self._last_error = str(e)
            raise

        self._opportunities = ranked
        self._last_cycle_at = self._clock()
        self._last_error = None

        logger.info(
            "cycle_complete",
            observations=len(observations),
            opportunities=len(ranked),
            top_symbol=ranked[0].symbol if ranked else None,
            top_spread=str(ranked[0].delta_spread_8h) if ranked else None,
        )

        await self._evaluate_alerts(ranked)
        if self._throttle is not None:
            await self._throttle.purge_expired()
        await self._maybe_send_digest(ranked)
        return ranked

    async def _evaluate_alerts(self, opportunities: list[OpportunityRecord]) -> None:
        """Throttle and notify for each opportunity above threshold.

        Store errors are handled inside the throttle (symbol skipped); send
        errors are logged here. Neither stops the remaining symbols.
        """
        if self._throttle is None:
            return

        for opp in opportunities:
            if not self._throttle.qualifies(opp):
                continue
            priority = await self._throttle.evaluate(opp)
            if priority is None:
                continue

            message = format_alert(build_notification(opp, priority))
            if await self._send(message, kind="alert", symbol=opp.symbol):
                self._alerts_sent += 1

    async def _maybe_send_digest(self, opportunities: list[OpportunityRecord]) -> None:
        settings = self._digest_settings
        if not settings.enabled or not opportunities:
            return

        now = self._clock()
        if (
            self._last_digest_at is not None
            and now - self._last_digest_at < settings.interval_seconds
        ):
            return

        self._last_digest_at = now
        top = self._ranker.top(opportunities, settings.top_n)
        await self._send(format_digest(top), kind="digest", count=len(top))

    async def _send(self, message: str, **context: object) -> bool:
        if self._notifier is None:
            logger.info("notification_skipped_no_notifier", **context)
            return False
        try:
            await self._notifier.send(message)
        except Exception as e:
            logger.warning("notification_send_failed", error=str(e), **context)
            return False
        return True

    # ──────────────────────────────────────────────
    # Read accessors
    # ──────────────────────────────────────────────

    def get_opportunities(self) -> list[OpportunityRecord]:
        """Ranked opportunities from the last successful cycle."""
        return list(self._opportunities)

    def get_status(self) -> dict:
        """Return scanner status for the API."""
        return {
            "running": self._running,
            "exchanges": [a.exchange.value for a in self._adapters],
            "cycle_count": self._cycle_count,
            "last_cycle_at": self._last_cycle_at,
            "opportunity_count": len(self._opportunities),
            "alerts_enabled": self._throttle is not None,
            "alerts_sent": self._alerts_sent,
            "last_error": self._last_error,
        }
