"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Public reads (index, detail, related, search) share two scopes:
  *published* (``published_at`` set and not in the future) and
  *not deleted* (``is_deleted`` false).  Articles are never hard-deleted.
- Eager loading via ``joinedload`` (many-to-one: author, category) and
  ``selectinload`` (many-to-many: keywords).  Relationships are
  ``lazy="noload"`` so every query names what it loads.
- The index page goes through the cache-aside pattern; store and update
  purge it.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import math
from datetime import datetime, timezone

from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blog.cache import cache
from blog.config import settings
from blog.models import Address, Article, Keyword, User
from blog.policies import can_edit_article, can_see_all_articles
from blog.schemas import ArticleForm, PaginatedResponse
from blog.services import keyword_service
from blog.services.user_service import user_to_dict

RELATED_ARTICLES_LIMIT = 3

# Form fields copied onto the Article on store / update.
_WRITABLE_FIELDS: frozenset[str] = frozenset(
    {"heading", "content", "category_id", "language", "is_comment_enabled"}
)

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset({"published_at", "created_at", "heading"})

_EXCERPT_LENGTH = 200


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _published():
    return and_(
        Article.published_at.is_not(None),
        Article.published_at <= datetime.now(timezone.utc),
    )


def _not_deleted():
    return Article.is_deleted.is_(False)


def _resolve_sort_column(sort_by: str):
    """Map *sort_by* onto an Article column, falling back to ``published_at``."""
    if sort_by in _SORTABLE_COLUMNS:
        return getattr(Article, sort_by)
    return Article.published_at


def _with_relations(q):
    """Eager-load author, category and keywords, refreshing rows already in the session."""
    return q.options(
        joinedload(Article.author),
        joinedload(Article.category),
        selectinload(Article.keywords),
    ).execution_options(populate_existing=True)


def _writable_values(data: ArticleForm) -> dict:
    return {field: getattr(data, field) for field in _WRITABLE_FIELDS}


def _pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total > 0 else 0


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _article_to_dict(article: Article) -> dict:
    """Serialise an Article ORM instance to a plain dict (list view)."""
    category = article.category
    return {
        "id": article.id,
        "heading": article.heading,
        "excerpt": article.content[:_EXCERPT_LENGTH],
        "language": article.language,
        "is_comment_enabled": article.is_comment_enabled,
        "is_deleted": article.is_deleted,
        "published_at": _isoformat(article.published_at),
        "created_at": _isoformat(article.created_at),
        "user_id": article.user_id,
        "category_id": article.category_id,
        "author": user_to_dict(article.author),
        "category": {"id": category.id, "name": category.name} if category else None,
        "keywords": [{"id": k.id, "name": k.name} for k in article.keywords],
    }


def _article_detail_to_dict(article: Article) -> dict:
    data = _article_to_dict(article)
    data["content"] = article.content
    return data


async def _paginate(db: AsyncSession, criteria, order_by, page: int, page_size: int, path: str) -> PaginatedResponse:
    """Run a COUNT plus one page of eager-loaded rows for *criteria*."""
    count_q = select(func.count()).select_from(Article).where(*criteria)
    total: int = (await db.execute(count_q)).scalar_one()

    rows_q = (
        _with_relations(select(Article))
        .where(*criteria)
        .order_by(*order_by)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(rows_q)
    articles = result.unique().scalars().all()

    return PaginatedResponse(
        items=[_article_to_dict(a) for a in articles],
        total=total,
        page=page,
        page_size=page_size,
        pages=_pages(total, page_size),
        path=path,
    )


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------

async def get_index_page(
    db: AsyncSession,
    page: int = 1,
    page_size: int = settings.ITEM_PER_PAGE,
    sort_by: str = "published_at",
    sort_order: str = "desc",
    path: str = "",
) -> PaginatedResponse:
    """
    Return one page of published, not-deleted articles, using Redis as a
    cache layer.
    """
    cache_key = f"articles:index:{page}:{page_size}:{sort_by}:{sort_order}"
    cached = await cache.get(cache_key)
    if cached:
        response = PaginatedResponse(**cached)
        response.path = path
        return response

    sort_col = _resolve_sort_column(sort_by)
    direction = desc if sort_order == "desc" else asc
    response = await _paginate(
        db,
        [_published(), _not_deleted()],
        [direction(sort_col), direction(Article.id)],
        page,
        page_size,
        path,
    )
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_published_article(db: AsyncSession, article_id: int, caller: User | None) -> dict | None:
    """
    Return the detail dict for a published, not-deleted article, with an
    ``is_editable`` flag computed for *caller*.

    Returns None when no such article exists.
    """
    q = (
        _with_relations(select(Article))
        .where(Article.id == article_id, _published(), _not_deleted())
    )
    result = await db.execute(q)
    article = result.unique().scalar_one_or_none()
    if article is None:
        return None

    data = _article_detail_to_dict(article)
    data["is_editable"] = can_edit_article(caller, article.user_id)
    return data


async def get_related_articles(db: AsyncSession, article: dict) -> list[dict]:
    """Up to three other published articles from the same category, newest first."""
    q = (
        _with_relations(select(Article))
        .where(
            Article.category_id == article["category_id"],
            Article.id != article["id"],
            _published(),
            _not_deleted(),
        )
        .order_by(desc(Article.created_at), desc(Article.id))
        .limit(RELATED_ARTICLES_LIMIT)
    )
    result = await db.execute(q)
    return [_article_to_dict(a) for a in result.unique().scalars().all()]


async def search_articles(
    db: AsyncSession,
    query: str,
    page: int = 1,
    page_size: int = settings.ITEM_PER_PAGE,
    path: str = "",
) -> PaginatedResponse:
    """
    Published, not-deleted articles whose heading or content contains
    *query*, or that carry an active keyword containing it.  Matching is
    an unanchored substring test; ``%`` and ``_`` in *query* are literal.
    """
    matches = or_(
        Article.heading.contains(query, autoescape=True),
        Article.content.contains(query, autoescape=True),
        Article.keywords.any(
            and_(Keyword.name.contains(query, autoescape=True), Keyword.is_active.is_(True))
        ),
    )
    return await _paginate(
        db,
        [_published(), _not_deleted(), matches],
        [desc(Article.created_at), desc(Article.id)],
        page,
        page_size,
        path,
    )


# ---------------------------------------------------------------------------
# Back-office reads
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, article_id: int) -> Article | None:
    """Fetch by primary key with no published / deleted filter."""
    return await db.get(Article, article_id)


async def get_edit_form(db: AsyncSession, article: Article) -> dict:
    """Plain dict for pre-filling the edit form, keywords flattened to one string."""
    data = {
        "id": article.id,
        "heading": article.heading,
        "content": article.content,
        "category_id": article.category_id,
        "language": article.language,
        "is_comment_enabled": article.is_comment_enabled,
        "published_at": _isoformat(article.published_at),
    }
    data["keywords"] = " ".join(await keyword_service.get_article_keyword_names(db, article.id))
    return data


async def get_admin_articles(
    db: AsyncSession,
    caller: User,
    page: int = 1,
    page_size: int = settings.ITEM_PER_PAGE,
    path: str = "",
) -> PaginatedResponse:
    """Not-deleted articles the caller may manage: all of them for editors, otherwise their own."""
    criteria = [_not_deleted()]
    if not can_see_all_articles(caller):
        criteria.append(Article.user_id == caller.id)
    return await _paginate(
        db, criteria, [desc(Article.created_at), desc(Article.id)], page, page_size, path
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, data: ArticleForm, author: User, client_ip: str) -> Article:
    """
    Publish a new article for *author*: record the client address, stamp
    ``published_at`` with the current time and attach the keywords.
    """
    address = Address(ip=client_ip)
    db.add(address)
    await db.flush()

    article = Article(
        **_writable_values(data),
        address_id=address.id,
        published_at=datetime.now(timezone.utc),
        user_id=author.id,
    )
    db.add(article)
    await db.flush()

    await keyword_service.replace_article_keywords(
        db, article.id, keyword_service.parse_keywords(data.keywords)
    )
    await cache.invalidate_articles()
    return article


async def update_article(db: AsyncSession, article: Article, data: ArticleForm) -> Article:
    """Overwrite the whitelisted fields and replace the keyword set."""
    for field, value in _writable_values(data).items():
        setattr(article, field, value)
    await db.flush()

    await keyword_service.replace_article_keywords(
        db, article.id, keyword_service.parse_keywords(data.keywords)
    )
    await cache.invalidate_articles()
    return article
