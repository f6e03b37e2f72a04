"""Notification sinks for reminders and escalation notices"""
import html
from typing import Awaitable, Callable, Optional, Sequence

import httpx
from sqlalchemy import select

from leadboard.core.config import settings
from leadboard.core.database import AsyncSessionLocal
from leadboard.models.seller import Seller
from leadboard.utils.logger import logger

ChatResolver = Callable[[object], Awaitable[Optional[str]]]


class NotificationSink:
    """
    Delivery target for (title, body, lead_id) messages.

    Implementations own formatting, delivery and retries. They log delivery
    failures and never raise them back into the caller.
    """

    async def notify(self, title: str, body: str, lead_id=None, seller_id=None) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    async def notify(self, title: str, body: str, lead_id=None, seller_id=None) -> None:
        logger.info(f"[notify] {title}: {body} (lead={lead_id}, seller={seller_id})")


class TelegramNotificationSink(NotificationSink):
    """Sends HTML messages through the Telegram Bot API sendMessage method"""

    def __init__(
        self,
        bot_token: str,
        default_chat_id: Optional[str] = None,
        topic_id: Optional[str] = None,
        resolve_chat_id: Optional[ChatResolver] = None,
        api_url: str = settings.TELEGRAM_API_URL,
        timeout: float = settings.TELEGRAM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.default_chat_id = default_chat_id
        self.topic_id = topic_id
        self.resolve_chat_id = resolve_chat_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def format_message(title: str, body: str) -> str:
        return f"🔔 <b>{html.escape(title)}</b>\n\n{html.escape(body)}"

    async def _chat_id_for(self, seller_id) -> Optional[str]:
        if seller_id is not None and self.resolve_chat_id is not None:
            try:
                chat_id = await self.resolve_chat_id(seller_id)
                if chat_id:
                    return chat_id
            except Exception as e:
                logger.warning(f"Could not resolve Telegram chat for seller {seller_id}: {e}")
        return self.default_chat_id

    async def notify(self, title: str, body: str, lead_id=None, seller_id=None) -> None:
        chat_id = await self._chat_id_for(seller_id)
        if not chat_id:
            logger.debug(f"No Telegram chat configured for seller {seller_id}, skipping '{title}'")
            return

        payload = {
            "chat_id": chat_id,
            "text": self.format_message(title, body),
            "parse_mode": "HTML",
        }
        if self.topic_id and chat_id == self.default_chat_id:
            payload["message_thread_id"] = int(self.topic_id)

        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
            logger.debug(f"Telegram message sent to {chat_id}: {title}")
        except httpx.HTTPError as e:
            logger.error(f"Error sending Telegram notification '{title}': {e}")


class CompositeNotificationSink(NotificationSink):
    def __init__(self, sinks: Sequence[NotificationSink]):
        self.sinks = list(sinks)

    async def notify(self, title: str, body: str, lead_id=None, seller_id=None) -> None:
        for sink in self.sinks:
            try:
                await sink.notify(title, body, lead_id=lead_id, seller_id=seller_id)
            except Exception as e:
                logger.error(f"Notification sink {type(sink).__name__} failed: {e}", exc_info=True)


async def seller_telegram_chat(seller_id) -> Optional[str]:
    """Look up a seller's personal Telegram chat id"""
    async with AsyncSessionLocal() as db:
        result = await db.execute(
            select(Seller.telegram_chat_id).where(Seller.id == seller_id)
        )
        return result.scalar_one_or_none()


def build_default_sink() -> NotificationSink:
    """Logging always; Telegram when a bot token is configured"""
    sinks: list[NotificationSink] = [LoggingNotificationSink()]
    if settings.TELEGRAM_BOT_TOKEN:
        sinks.append(
            TelegramNotificationSink(
                bot_token=settings.TELEGRAM_BOT_TOKEN,
                default_chat_id=settings.TELEGRAM_CHAT_ID,
                topic_id=settings.TELEGRAM_TOPIC_ID,
                resolve_chat_id=seller_telegram_chat,
            )
        )
        logger.info("Telegram notifications enabled")
    return CompositeNotificationSink(sinks)
