"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from fundingarb.models import Exchange

# Most liquid OKX USDT swaps; OKX serves funding rates one instrument at a time.
DEFAULT_OKX_SYMBOLS: list[str] = [
    "BTC-USDT-SWAP", "ETH-USDT-SWAP", "SOL-USDT-SWAP", "DOGE-USDT-SWAP",
    "XRP-USDT-SWAP", "ADA-USDT-SWAP", "AVAX-USDT-SWAP", "LINK-USDT-SWAP",
    "WLD-USDT-SWAP", "ORDI-USDT-SWAP", "PEPE-USDT-SWAP", "SUI-USDT-SWAP",
    "APT-USDT-SWAP", "AR-USDT-SWAP", "TIA-USDT-SWAP", "SEI-USDT-SWAP",
    "INJ-USDT-SWAP", "OP-USDT-SWAP", "ARB-USDT-SWAP", "NEAR-USDT-SWAP",
    "DOT-USDT-SWAP", "LTC-USDT-SWAP", "BCH-USDT-SWAP", "TRX-USDT-SWAP",
    "ATOM-USDT-SWAP", "FIL-USDT-SWAP", "UNI-USDT-SWAP", "TON-USDT-SWAP",
    "FET-USDT-SWAP", "JUP-USDT-SWAP", "ONDO-USDT-SWAP", "PENDLE-USDT-SWAP",
    "ENA-USDT-SWAP", "WIF-USDT-SWAP", "1000BONK-USDT-SWAP", "SHIB-USDT-SWAP",
]


class ScannerSettings(BaseSettings):
    """Poll cycle and exchange selection."""

    model_config = SettingsConfigDict(env_prefix="SCANNER_")

    poll_interval: float = 30.0  # seconds between poll cycles
    exchanges: list[Exchange] = list(Exchange)
    request_timeout_ms: int = 10000
    okx_symbols: list[str] = DEFAULT_OKX_SYMBOLS


class AlertSettings(BaseSettings):
    """Alert throttle parameters.

    A spread must exceed ``threshold`` (percent, 8h basis) to be considered.
    Within ``window_ms`` of the last alert for a symbol, a repeat alert needs
    the spread to have widened by at least ``escalation_delta``.
    """

    model_config = SettingsConfigDict(env_prefix="ALERT_")

    enabled: bool = True
    threshold: Decimal = Decimal("10.0")
    window_ms: int = 3_600_000  # 1 hour
    escalation_delta: Decimal = Decimal("2.0")
    state_ttl_seconds: int = 86400  # 24h store expiry


class TelegramSettings(BaseSettings):
    """Telegram Bot API credentials. Without a token, alerts are only logged."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    bot_token: SecretStr = SecretStr("")
    chat_ids: str = ""  # comma-separated
    request_timeout: float = 10.0

    @property
    def chat_id_list(self) -> list[str]:
        """Return configured chat ids with whitespace and empties removed."""
        return [c.strip() for c in self.chat_ids.split(",") if c.strip()]

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token.get_secret_value()) and bool(self.chat_id_list)


class StoreSettings(BaseSettings):
    """Persistence backend for alert throttle state."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = "data/alerts.db"


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


class DigestSettings(BaseSettings):
    """Periodic top-N opportunity digest (independent of the alert throttle)."""

    model_config = SettingsConfigDict(env_prefix="DIGEST_")

    enabled: bool = False
    interval_seconds: int = 3600
    top_n: int = 5


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    scanner: ScannerSettings = ScannerSettings()
    alerts: AlertSettings = AlertSettings()
    telegram: TelegramSettings = TelegramSettings()
    store: StoreSettings = StoreSettings()
    api: ApiSettings = ApiSettings()
    digest: DigestSettings = DigestSettings()
