from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blog.config import settings
from blog.database import get_db
from blog.models import User
from blog.services import user_service

# Session key written by the external authentication layer on sign-in.
SESSION_USER_KEY = "user_id"


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination / sorting query
    parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Items per page; defaults to ``settings.ITEM_PER_PAGE`` and is
        clamped to ``settings.MAX_PAGE_SIZE``.
    sort_by:
        Column name; the service layer maps it onto a whitelisted column.
    sort_order:
        ``"asc"`` or ``"desc"``.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int | None = Query(
            None,
            ge=1,
            description="Number of items returned per page.",
        ),
        sort_by: str = Query("published_at", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size or settings.ITEM_PER_PAGE, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


async def get_current_user(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User | None:
    """
    Resolve the signed-in caller from the session, or None for anonymous
    requests.  Handlers receive the caller explicitly through this
    dependency.
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    return await user_service.get_user_by_id(db, int(user_id))


async def require_user(caller: User | None = Depends(get_current_user)) -> User:
    if caller is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return caller
