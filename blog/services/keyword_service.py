"""
Keyword service — tagging for the Article aggregate.

Keywords arrive as one whitespace-separated string, so a keyword name
can never contain whitespace.  Names are matched case-sensitively as
stored.
"""
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import Keyword, article_keyword


def parse_keywords(raw: str | None) -> list[str]:
    """Split *raw* on whitespace, dropping blanks and repeated names (first one wins)."""
    if not raw:
        return []
    return list(dict.fromkeys(raw.split()))


async def find_or_create(db: AsyncSession, name: str) -> Keyword:
    result = await db.execute(select(Keyword).where(Keyword.name == name))
    keyword = result.scalar_one_or_none()
    if keyword is None:
        keyword = Keyword(name=name)
        db.add(keyword)
        await db.flush()
    return keyword


async def replace_article_keywords(db: AsyncSession, article_id: int, names: list[str]) -> list[Keyword]:
    """
    Detach every keyword from the article, then attach one row per name,
    creating missing keywords on the way.  The resulting set depends only
    on *names*, never on what was attached before.
    """
    keywords = [await find_or_create(db, name) for name in names]

    await db.execute(delete(article_keyword).where(article_keyword.c.article_id == article_id))
    if keywords:
        await db.execute(
            insert(article_keyword),
            [
                {"article_id": article_id, "keyword_id": k.id, "position": i}
                for i, k in enumerate(keywords)
            ],
        )
    return keywords


async def get_article_keyword_names(db: AsyncSession, article_id: int) -> list[str]:
    q = (
        select(Keyword.name)
        .join(article_keyword, article_keyword.c.keyword_id == Keyword.id)
        .where(article_keyword.c.article_id == article_id)
        .order_by(article_keyword.c.position)
    )
    result = await db.execute(q)
    return list(result.scalars().all())
