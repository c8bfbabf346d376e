"""Custom exceptions for the funding spread scanner.

Kept in one module so the core, alerting and API layers can share them
without circular imports.
"""


class ScannerError(Exception):
    """Base exception for all scanner errors."""


class AggregationError(ScannerError):
    """Raised when grouping, spread computation or ranking fails for a cycle."""


class AlertStoreError(ScannerError):
    """Raised when the alert state store cannot be read or written."""


class NotificationError(ScannerError):
    """Raised when a notification could not be delivered."""
