import json
from typing import Optional
from urllib.parse import urlsplit

from .settings import SlackSettings
from ..transport import FailoverDispatcher, FailoverError
from ..utils.logger import get_logger


class SlackChannel:
    name = "slack"

    def __init__(self, dispatcher: FailoverDispatcher):
        self.dispatcher = dispatcher
        self.logger = get_logger(__name__)

    def build_payload(self, settings: SlackSettings, message: str) -> dict:
        return {
            "text": message,
            "channel": settings.channel,
            "username": settings.sender,
            "icon_emoji": settings.emoji,
        }

    async def send(self, message: str, attachment: Optional[bytes], settings: SlackSettings) -> bool:
        if not settings.uri:
            self.logger.warning("Slack URI not valid")
            return False

        uri = urlsplit(settings.uri)
        if not uri.scheme or not uri.netloc:
            self.logger.warning(f"Slack URI not valid: {settings.uri}")
            return False

        path = uri.path
        if uri.query:
            path = f"{path}?{uri.query}"

        body = json.dumps(self.build_payload(settings, message)).encode("utf-8")
        self.logger.debug(f"Slack payload: {body.decode('utf-8')}")

        try:
            await self.dispatcher.request([f"{uri.scheme}://{uri.netloc}"], "POST", path, body)
        except FailoverError as e:
            self.logger.error(f"Failed to post Slack notification: {e}")
            return False
        return True
