"""
Notification service — tells subscribers about newly published articles.

One mail per subscriber is handed to the Redis-backed ``mail_queue``;
delivery happens out of band.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blog.config import settings
from blog.mailer import mail_queue
from blog.models import Article
from blog.schemas import QueuedMail
from blog.services import user_service
from blog.templating import render_mail

logger = logging.getLogger(__name__)


async def notify_subscribers(db: AsyncSession, article: Article, article_url: str) -> int:
    """Queue a new-article mail for every subscribed user; return how many were queued."""
    queued = 0
    for subscriber in await user_service.get_subscribed_users(db):
        mail = QueuedMail(
            to=subscriber.email,
            sender=settings.MAIL_FROM,
            subject=f"New article: {article.heading}",
            body=render_mail(
                "new_article.txt",
                subscriber_name=subscriber.name,
                heading=article.heading,
                article_url=article_url,
            ),
        )
        if await mail_queue.enqueue(mail):
            queued += 1
    logger.info("Queued %d notification mail(s) for article %s", queued, article.id)
    return queued
