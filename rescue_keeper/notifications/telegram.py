"""Telegram notification service for rescue outcomes."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"

# Telegram rejects messages longer than this.
MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier:
    """Send rescue alerts (loud bot) and keeper logs (quiet bot) via Telegram."""

    def __init__(self, config: TelegramConfig, timeout: int = 10) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token or config.alert_bot_token
        self.chat_id = config.chat_id
        self.timeout = timeout

    async def _send_message(
        self, message: str, bot_token: str, silent: bool = False
    ) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": message[:MAX_MESSAGE_LENGTH],
            "disable_web_page_preview": True,
            "disable_notification": silent,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                url, json=payload, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status == 200:
                    return True
                logger.error("Failed to send Telegram message: %s", response.status)
                return False

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Send a rescue alert with sound on."""
        if await self._send_message(message, self.alert_bot_token, silent=False):
            logger.info("Telegram alert sent%s", f" ({subject})" if subject else "")
            return True
        return False

    async def send_log(self, message: str, silent: bool = True) -> bool:
        if await self._send_message(message, self.log_bot_token, silent=silent):
            logger.debug("Telegram log sent")
            return True
        return False
