"""Telegram notification service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig
from ..models import Alert, AlertLevel
from ..reporting import format_alert

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Send alerts via Telegram bots.

    WARNING and CRITICAL alerts go to the (unmuted) alert bot; INFO alerts
    go to the log bot as silent messages.
    """

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _send_message(
        self, message: str, bot_token: str, silent: bool = False
    ) -> bool:
        """Send Telegram message using specified bot."""
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "disable_notification": silent,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(url, json=payload) as response:
                    if response.status == 200:
                        return True
                    logger.error("Failed to send Telegram message: %s", response.status)
                    return False
        except aiohttp.ClientError as e:
            logger.error("Failed to send Telegram message: %s", e)
            return False

    async def notify(self, alert: Alert) -> bool:
        """Route an alert to the bot matching its level."""
        text = f"{format_alert(alert)}\n\n{alert.timestamp:%Y-%m-%d %H:%M:%S} UTC"

        if alert.level is AlertLevel.INFO:
            sent = await self._send_message(text, self.log_bot_token, silent=True)
        else:
            sent = await self._send_message(text, self.alert_bot_token, silent=False)

        if sent:
            logger.info("Telegram %s alert sent", alert.level.value)
        return sent

    async def send_report(self, report: str) -> bool:
        """Send a position report (log bot, audible)."""
        if await self._send_message(report, self.log_bot_token, silent=False):
            logger.info("Telegram report sent")
            return True
        return False
