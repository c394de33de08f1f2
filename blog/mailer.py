"""
Outbound mail queue.

Messages are serialised to JSON and pushed onto a Redis list
(``settings.MAIL_QUEUE_KEY``); a separate delivery worker pops and sends
them.  Enqueueing is fire-and-forget: the request never waits for
delivery and a Redis failure only costs the message, never the request.
"""
import logging

import redis.asyncio as redis

from blog.config import settings
from blog.schemas import QueuedMail

logger = logging.getLogger(__name__)


class MailQueue:
    def __init__(self, key: str = settings.MAIL_QUEUE_KEY) -> None:
        self.key = key
        self._redis: redis.Redis | None = None
        self._queued: int = 0
        self._dropped: int = 0

    def bind(self, client: redis.Redis | None) -> None:
        """Attach the Redis client opened by the cache at startup."""
        self._redis = client

    async def enqueue(self, mail: QueuedMail) -> bool:
        """Push *mail* onto the queue.  Returns False when it was dropped."""
        if not self._redis:
            self._dropped += 1
            logger.warning("Mail queue unavailable, dropping mail to %s", mail.to)
            return False
        try:
            await self._redis.rpush(self.key, mail.model_dump_json())
        except Exception as exc:
            self._dropped += 1
            logger.warning("Mail queue RPUSH failed for %s: %s", mail.to, exc)
            return False
        self._queued += 1
        return True

    @property
    def stats(self) -> dict:
        return {"queued": self._queued, "dropped": self._dropped}


mail_queue = MailQueue()
