"""
User service — read-only lookups for the User aggregate.

Users are managed by the authentication layer; this application only
resolves the current caller and the list of newsletter subscribers.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import User


def user_to_dict(user: User | None) -> dict | None:
    """Public author card; the email address is not exposed."""
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "role": user.role,
    }


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_subscribed_users(db: AsyncSession) -> list[User]:
    """Return every user who opted in to new-article notifications."""
    q = select(User).where(User.is_subscribed.is_(True)).order_by(User.id)
    result = await db.execute(q)
    return list(result.scalars().all())
