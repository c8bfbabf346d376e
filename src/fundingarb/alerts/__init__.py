"""Alerting -- throttle state machine, state stores, message formatting and delivery."""

from fundingarb.alerts.formatter import build_notification, format_alert, format_digest
from fundingarb.alerts.notifier import LogNotifier, Notifier, TelegramNotifier, build_notifier
from fundingarb.alerts.store import AlertStateStore, InMemoryAlertStore, SqliteAlertStore
from fundingarb.alerts.throttle import AlertThrottle, decide, state_key

__all__ = [
    "AlertStateStore",
    "AlertThrottle",
    "InMemoryAlertStore",
    "LogNotifier",
    "Notifier",
    "SqliteAlertStore",
    "TelegramNotifier",
    "build_notification",
    "build_notifier",
    "decide",
    "format_alert",
    "format_digest",
    "state_key",
]
