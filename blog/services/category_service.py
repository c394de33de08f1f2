from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import Category
from blog.schemas import CategoryResponse


async def get_active_categories(db: AsyncSession) -> list[dict]:
    """Categories offered in the create / edit forms, alphabetically."""
    q = select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
    result = await db.execute(q)
    return [CategoryResponse.model_validate(c).model_dump() for c in result.scalars().all()]
