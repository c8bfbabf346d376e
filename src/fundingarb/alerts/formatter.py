"""Telegram HTML message formatting for alerts and the top-N digest.

Raw per-exchange rates are shown with their native interval so the reader can
check them against the exchange UI; the spread is on the 8h basis.
"""

from datetime import datetime, timezone
from decimal import Decimal
from html import escape

from fundingarb.models import (
    AlertLeg,
    AlertNotification,
    AlertPriority,
    OpportunityRecord,
)

_PRIORITY_LABELS: dict[AlertPriority, str] = {
    AlertPriority.STANDARD: "STANDARD",
    AlertPriority.HIGH: "🚀 HIGH-PRIORITY",
}

_MEDALS = ("🥇", "🥈", "🥉")
_SEPARATOR = "━━━━━━━━━━━━━━━━━━━━"


def build_notification(
    opportunity: OpportunityRecord, priority: AlertPriority
) -> AlertNotification:
    """Extract the alert payload (symbol, priority, spread, legs) from a record."""
    mx = opportunity.max_observation
    mn = opportunity.min_observation
    return AlertNotification(
        symbol=opportunity.symbol,
        priority=priority,
        spread=opportunity.delta_spread_8h,
        recommendation=opportunity.recommendation,
        long_leg=AlertLeg(mn.exchange, mn.raw_rate, mn.interval_hours),
        short_leg=AlertLeg(mx.exchange, mx.raw_rate, mx.interval_hours),
    )


def _pct(rate: Decimal) -> str:
    """Fractional rate as a percentage with 4 decimals (0.0001 -> '0.0100')."""
    return f"{rate * 100:.4f}"


def _hours(interval_hours: Decimal) -> str:
    return f"{interval_hours.normalize():f}"


def _leg(leg: AlertLeg) -> str:
    return f"{leg.exchange.value} at {_pct(leg.raw_rate)}% ({_hours(leg.interval_hours)}h)"


def format_alert(notification: AlertNotification) -> str:
    """Render a single throttled alert."""
    label = _PRIORITY_LABELS[notification.priority]
    lines = [
        f"<b>{label} Arbitrage Alert: {escape(notification.symbol)}</b>",
        f"Spread: <b>{notification.spread:.2f}%</b> (8h equivalent)",
        f"Action: {notification.recommendation}",
        f"Short: {_leg(notification.short_leg)}",
        f"Long: {_leg(notification.long_leg)}",
    ]
    return "\n".join(lines)


def format_digest(
    opportunities: list[OpportunityRecord], now: datetime | None = None
) -> str:
    """Render the ranked top-N digest.

    Args:
        opportunities: Already ranked and truncated records.
        now: Timestamp shown in the header (defaults to current UTC time).
    """
    if now is None:
        now = datetime.now(timezone.utc)

    parts = [
        "🔔 <b>Funding Rate Digest</b>",
        f"📅 {now.strftime('%d %b %Y • %H:%M')} UTC",
        _SEPARATOR,
        "",
    ]

    for i, opp in enumerate(opportunities):
        medal = _MEDALS[i] if i < len(_MEDALS) else f"#{i + 1}"
        mx = opp.max_observation
        mn = opp.min_observation
        parts.extend([
            f"{medal} <b>{escape(opp.symbol)}</b>",
            f"   📊 Spread: <b>{opp.delta_spread_8h:.4f}%</b> (8h)",
            f"   💰 Net APR: <b>+{opp.net_apr:.2f}%</b>",
            f"   🟢 Long: {mn.exchange.value} ({_pct(mn.raw_rate)}% / {_hours(mn.interval_hours)}h)",
            f"   🔴 Short: {mx.exchange.value} ({_pct(mx.raw_rate)}% / {_hours(mx.interval_hours)}h)",
            "",
        ])

    parts.extend([
        _SEPARATOR,
        "💡 <i>Long = open long where funding is low</i>",
        "💡 <i>Short = open short where funding is high</i>",
    ])
    return "\n".join(parts)
