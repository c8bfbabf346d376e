"""Outbound notification channels.

Senders raise NotificationError on failure. Callers log and move on: there
are no retries, and a failed send never affects the opportunity output.
"""

import asyncio
from abc import ABC, abstractmethod

import aiohttp

from fundingarb.config import TelegramSettings
from fundingarb.exceptions import NotificationError
from fundingarb.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class Notifier(ABC):
    """Abstract message sink."""

    @abstractmethod
    async def send(self, text: str) -> None:
        """Deliver an HTML-formatted message."""
        ...

    async def close(self) -> None:
        """Release transport resources, if any."""


class LogNotifier(Notifier):
    """Writes messages to the log. Used when Telegram is not configured."""

    async def send(self, text: str) -> None:
        logger.info("alert_message", text=text)


class TelegramNotifier(Notifier):
    """Sends messages through the Telegram Bot API ``sendMessage`` method.

    Every configured chat id is attempted; if any delivery fails, a single
    NotificationError listing the failed chats is raised afterwards.

    Args:
        settings: Bot token, chat ids and request timeout.
        session: Shared aiohttp session. If omitted, one is created on first
            send and closed by close().
    """

    def __init__(
        self,
        settings: TelegramSettings,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    @property
    def _url(self) -> str:
        token = self._settings.bot_token.get_secret_value()
        return f"{TELEGRAM_API_URL}/bot{token}/sendMessage"

    async def send(self, text: str) -> None:
        chat_ids = self._settings.chat_id_list
        if not chat_ids:
            raise NotificationError("no Telegram chat ids configured")

        failed: list[str] = []
        for chat_id in chat_ids:
            try:
                await self._send_one(chat_id, text)
            except NotificationError as e:
                logger.warning("telegram_send_failed", chat_id=chat_id, error=str(e))
                failed.append(chat_id)

        if failed:
            raise NotificationError(
                f"delivery failed for {len(failed)}/{len(chat_ids)} chats: {', '.join(failed)}"
            )
        logger.debug("telegram_sent", chats=len(chat_ids))

    async def _send_one(self, chat_id: str, text: str) -> None:
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        timeout = aiohttp.ClientTimeout(total=self._settings.request_timeout)
        try:
            async with self._get_session().post(
                self._url, json=payload, timeout=timeout
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise NotificationError(f"HTTP {resp.status}: {body[:200]}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationError(f"{type(e).__name__}: {e}") from e

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None


def build_notifier(
    settings: TelegramSettings, session: aiohttp.ClientSession | None = None
) -> Notifier:
    """Return a TelegramNotifier when credentials are set, else a LogNotifier."""
    if settings.is_configured:
        return TelegramNotifier(settings, session)
    logger.warning(
        "telegram_not_configured",
        note="Alerts will be written to the log only.",
    )
    return LogNotifier()
