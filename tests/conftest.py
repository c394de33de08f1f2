"""
Test infrastructure for the blog application.

Strategy
--------
- SQLite in-memory via aiosqlite with StaticPool, so every session shares
  the one connection that holds the in-memory database.
- ``get_db`` is overridden so every request uses the test session factory.
- All tables are created before each test and dropped after.
- Redis is disabled by setting ``cache._redis = None``; the mail queue
  gets an in-memory recorder when a test asks for ``mail_outbox``.
- Authentication is external to the app, so ``login_as`` overrides the
  ``get_current_user`` dependency with a fixed caller.
"""
import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog.cache import cache
from blog.database import Base, get_db
from blog.dependencies import get_current_user
from blog.mailer import mail_queue
from blog.main import app
from blog.middleware import install_query_counter
from blog.models import Article, Category, Keyword, User
from blog.services import keyword_service

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class RecordingRedis:
    """Stands in for the Redis client behind ``mail_queue``."""

    def __init__(self) -> None:
        self.pushed: list[tuple[str, str]] = []

    async def rpush(self, key: str, value: str) -> int:
        self.pushed.append((key, value))
        return len(self.pushed)

    @property
    def mails(self) -> list[dict]:
        return [json.loads(value) for _, value in self.pushed]


class Factory:
    """Seeds rows through a live session and commits after each one."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def user(self, role: str = "author", is_subscribed: bool = False, name: str | None = None) -> User:
        n = self._next()
        user = User(
            name=name or f"User {n}",
            email=f"user{n}@example.com",
            role=role,
            is_subscribed=is_subscribed,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def category(self, name: str | None = None, is_active: bool = True) -> Category:
        category = Category(name=name or f"Category {self._next()}", is_active=is_active)
        self.db.add(category)
        await self.db.commit()
        return category

    async def keyword(self, name: str, is_active: bool = True) -> Keyword:
        keyword = Keyword(name=name, is_active=is_active)
        self.db.add(keyword)
        await self.db.commit()
        return keyword

    async def article(
        self,
        author: User,
        category: Category,
        heading: str = "An article",
        content: str = "Some content",
        keywords: str = "",
        age_hours: int = 24,
        published: bool = True,
        is_deleted: bool = False,
    ) -> Article:
        """``age_hours`` drives both timestamps, so larger means older."""
        stamp = datetime.now(timezone.utc) - timedelta(hours=age_hours)
        article = Article(
            heading=heading,
            content=content,
            category_id=category.id,
            user_id=author.id,
            language="en",
            is_comment_enabled=True,
            is_deleted=is_deleted,
            published_at=stamp if published else None,
            created_at=stamp,
        )
        self.db.add(article)
        await self.db.flush()
        await keyword_service.replace_article_keywords(
            self.db, article.id, keyword_service.parse_keywords(keywords)
        )
        await self.db.commit()
        return article


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    mail_queue.bind(None)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mail_outbox() -> RecordingRedis:
    recorder = RecordingRedis()
    mail_queue.bind(recorder)
    yield recorder
    mail_queue.bind(None)


@pytest.fixture
def login_as():
    """Call with a User to make every following request run as that caller."""

    def _login(user: User) -> None:
        user_id = user.id

        async def _current_user(db: AsyncSession = Depends(get_db)) -> User | None:
            return await db.get(User, user_id)

        app.dependency_overrides[get_current_user] = _current_user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def failing_commit():
    """Request sessions run their statements but fail at COMMIT."""

    async def _db():
        async with async_session_test() as session:

            async def _commit() -> None:
                raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

            session.commit = _commit
            try:
                yield session
            finally:
                await session.rollback()

    app.dependency_overrides[get_db] = _db
    yield
    app.dependency_overrides[get_db] = override_get_db
