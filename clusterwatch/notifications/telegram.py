from typing import Dict, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramRetryAfter
from aiogram.types import BufferedInputFile

from .settings import TelegramSettings
from ..utils.logger import get_logger


class TelegramChannel:
    name = "telegram"

    def __init__(self):
        self.logger = get_logger(__name__)
        self._bots: Dict[str, Bot] = {}

    def _get_bot(self, token: str) -> Bot:
        bot = self._bots.get(token)
        if bot is None:
            bot = Bot(token=token)
            self._bots[token] = bot
        return bot

    async def send(self, message: str, attachment: Optional[bytes], settings: TelegramSettings) -> bool:
        if not settings.bot_token or not settings.chat_id:
            self.logger.warning("Telegram settings are not valid")
            return False

        bot = self._get_bot(settings.bot_token)
        try:
            await bot.send_message(
                chat_id=settings.chat_id,
                text=message,
                message_thread_id=settings.topic_id,
            )
            if attachment:
                await bot.send_document(
                    chat_id=settings.chat_id,
                    document=BufferedInputFile(attachment, filename="results.json"),
                    message_thread_id=settings.topic_id,
                )
        except TelegramRetryAfter as e:
            self.logger.warning(f"Telegram rate limit hit, dropping notification (retry after {e.retry_after}s)")
            return False
        except TelegramAPIError as e:
            self.logger.error(f"Telegram API error: {e}")
            return False
        except Exception as e:
            self.logger.error(f"Failed to send Telegram notification: {e}")
            return False

        return True

    async def close(self) -> None:
        for bot in self._bots.values():
            await bot.session.close()
        self._bots.clear()
