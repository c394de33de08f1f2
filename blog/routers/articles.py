"""
Article routes: the public pages (index, detail, search) and the
back-office form endpoints (create, store, edit, update).

View routes answer failures with a 303 redirect plus a flash message;
the JSON endpoints used by the editor answer with ``{"errorMsg": ...}``.
"""
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blog.database import get_db
from blog.dependencies import PaginationParams, get_current_user, require_user
from blog.flash import flash
from blog.models import User
from blog.policies import can_edit_article
from blog.schemas import ArticleForm, ErrorResponseBody, RedirectResponseBody
from blog.services import article_service, category_service, notification_service
from blog.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["articles"])

NOT_FOUND_MESSAGE = "Article not found"
UNAUTHORIZED_MESSAGE = "Unauthorized request"
PERSISTENCE_ERROR_MESSAGE = "Could not save the article, please try again later."

_JSON_ERRORS = {
    401: {"model": ErrorResponseBody},
    404: {"model": ErrorResponseBody},
    500: {"model": ErrorResponseBody},
}


def _redirect_home(request: Request, category: str, message: str) -> RedirectResponse:
    flash(request, category, message)
    return RedirectResponse(str(request.url_for("home")), status_code=303)


def _json_error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"errorMsg": message}, status_code=status_code)


def _persistence_failure(action: str, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Article %s failed: %s: %s", action, type(exc).__name__, exc)
    return _json_error(PERSISTENCE_ERROR_MESSAGE, 500)


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------

@router.get("/", name="home", response_class=HTMLResponse)
async def index(
    request: Request,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
    caller: User | None = Depends(get_current_user),
):
    articles = await article_service.get_index_page(
        db,
        pagination.page,
        pagination.page_size,
        pagination.sort_by,
        pagination.sort_order,
        path=str(request.url_for("home")),
    )
    return templates.TemplateResponse(
        request, "frontend/articles/index.html", {"articles": articles, "current_user": caller}
    )


@router.get("/articles/{article_id}", name="articles-show", response_class=HTMLResponse)
@router.get("/articles/{article_id}/{heading}", name="articles-show-slug", response_class=HTMLResponse)
async def show(
    request: Request,
    article_id: int,
    heading: str = "",
    db: AsyncSession = Depends(get_db),
    caller: User | None = Depends(get_current_user),
):
    # The heading segment is only there for readable URLs.
    article = await article_service.get_published_article(db, article_id, caller)
    if article is None:
        return _redirect_home(request, "warningMsg", NOT_FOUND_MESSAGE)

    related_articles = await article_service.get_related_articles(db, article)
    return templates.TemplateResponse(
        request,
        "frontend/articles/show.html",
        {"article": article, "related_articles": related_articles, "current_user": caller},
    )


@router.get("/search", name="search", response_class=HTMLResponse)
async def search(
    request: Request,
    query_string: str = Query(..., min_length=1, pattern=r"\S"),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
    caller: User | None = Depends(get_current_user),
):
    query_string = query_string.strip()
    path = str(request.url_for("search").include_query_params(query_string=query_string))
    articles = await article_service.search_articles(db, query_string, page, path=path)
    searched = {"articles": articles, "query": query_string}
    return templates.TemplateResponse(
        request, "frontend/articles/search_result.html", {"searched": searched, "current_user": caller}
    )


# ---------------------------------------------------------------------------
# Back office
# ---------------------------------------------------------------------------

@router.get("/admin/articles", name="admin-articles", response_class=HTMLResponse)
async def admin_index(
    request: Request,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_user),
):
    articles = await article_service.get_admin_articles(
        db, caller, pagination.page, pagination.page_size, path=str(request.url_for("admin-articles"))
    )
    return templates.TemplateResponse(
        request, "backend/articles.html", {"articles": articles, "current_user": caller}
    )


@router.get("/admin/articles/create", name="admin-articles-create", response_class=HTMLResponse)
async def create(
    request: Request,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_user),
):
    categories = await category_service.get_active_categories(db)
    return templates.TemplateResponse(
        request, "backend/article_create.html", {"categories": categories, "current_user": caller}
    )


@router.post(
    "/admin/articles",
    name="admin-articles-store",
    response_model=RedirectResponseBody,
    responses=_JSON_ERRORS,
)
async def store(
    request: Request,
    data: ArticleForm,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_user),
):
    client_ip = request.client.host if request.client else "unknown"
    try:
        article = await article_service.create_article(db, data, caller, client_ip)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        return _persistence_failure("store", exc)

    # Subscribers only hear about committed articles.
    article_url = str(request.url_for("articles-show", article_id=article.id))
    try:
        await notification_service.notify_subscribers(db, article, article_url)
    except SQLAlchemyError as exc:
        logger.warning("Subscriber notification for article %s failed: %s", article.id, exc)

    flash(request, "successMsg", "Article published successfully!")
    return {"redirect_url": str(request.url_for("admin-articles"))}


@router.get("/admin/articles/{article_id}/edit", name="admin-articles-edit", response_class=HTMLResponse)
async def edit(
    request: Request,
    article_id: int,
    db: AsyncSession = Depends(get_db),
    caller: User | None = Depends(get_current_user),
):
    article = await article_service.get_article(db, article_id)
    if article is None:
        return _redirect_home(request, "errorMsg", NOT_FOUND_MESSAGE)
    if not can_edit_article(caller, article.user_id):
        return _redirect_home(request, "errorMsg", UNAUTHORIZED_MESSAGE)

    form = await article_service.get_edit_form(db, article)
    categories = await category_service.get_active_categories(db)
    return templates.TemplateResponse(
        request,
        "backend/article_edit.html",
        {"article": form, "categories": categories, "current_user": caller},
    )


@router.put(
    "/admin/articles/{article_id}",
    name="admin-articles-update",
    response_model=RedirectResponseBody,
    responses=_JSON_ERRORS,
)
async def update(
    request: Request,
    article_id: int,
    data: ArticleForm,
    db: AsyncSession = Depends(get_db),
    caller: User | None = Depends(get_current_user),
):
    article = await article_service.get_article(db, article_id)
    if article is None:
        return _json_error(NOT_FOUND_MESSAGE, 404)
    if not can_edit_article(caller, article.user_id):
        return _json_error(UNAUTHORIZED_MESSAGE, 401)

    try:
        await article_service.update_article(db, article, data)
    except SQLAlchemyError as exc:
        await db.rollback()
        return _persistence_failure("update", exc)

    flash(request, "successMsg", "Article updated successfully!")
    return {"redirect_url": str(request.url_for("admin-articles"))}
