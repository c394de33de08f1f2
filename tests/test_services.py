"""
Direct service-layer tests — exercise the query and keyword logic with a
database session and no HTTP in between.
"""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import Keyword
from blog.schemas import ArticleForm, PaginatedResponse
from blog.services import article_service, category_service, keyword_service, user_service


# ---------------------------------------------------------------------------
# keyword_service
# ---------------------------------------------------------------------------

def test_parse_keywords_splits_on_any_whitespace():
    assert keyword_service.parse_keywords("php  laravel\tphp\nvue ") == ["php", "laravel", "vue"]


def test_parse_keywords_blank_input():
    assert keyword_service.parse_keywords("") == []
    assert keyword_service.parse_keywords("   ") == []
    assert keyword_service.parse_keywords(None) == []


def test_parse_keywords_is_case_sensitive():
    assert keyword_service.parse_keywords("PHP php") == ["PHP", "php"]


@pytest.mark.asyncio
async def test_find_or_create_reuses_existing(db_session: AsyncSession):
    first = await keyword_service.find_or_create(db_session, "python")
    second = await keyword_service.find_or_create(db_session, "python")
    assert first.id == second.id
    count = (await db_session.execute(select(func.count()).select_from(Keyword))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_replace_article_keywords(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    article = await factory.article(author, category, keywords="php laravel")
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == ["php", "laravel"]

    await keyword_service.replace_article_keywords(db_session, article.id, ["php"])
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == ["php"]

    # The detached keyword row itself is kept for reuse.
    names = (await db_session.execute(select(Keyword.name).order_by(Keyword.name))).scalars().all()
    assert names == ["laravel", "php"]


@pytest.mark.asyncio
async def test_keyword_names_keep_entry_order(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    article = await factory.article(author, category, keywords="zeta alpha mid")
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == ["zeta", "alpha", "mid"]

    await keyword_service.replace_article_keywords(db_session, article.id, ["mid", "zeta"])
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == ["mid", "zeta"]


@pytest.mark.asyncio
async def test_replace_article_keywords_with_nothing(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    article = await factory.article(author, category, keywords="go")

    await keyword_service.replace_article_keywords(db_session, article.id, [])
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == []


# ---------------------------------------------------------------------------
# article_service: reads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_index_page_empty(db_session: AsyncSession):
    result = await article_service.get_index_page(db_session)
    assert isinstance(result, PaginatedResponse)
    assert result.total == 0
    assert result.items == []
    assert result.pages == 0


@pytest.mark.asyncio
async def test_get_index_page_sorting(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    await factory.article(author, category, heading="Bravo", age_hours=2)
    await factory.article(author, category, heading="Alpha", age_hours=1)

    by_heading = await article_service.get_index_page(db_session, sort_by="heading", sort_order="asc")
    assert [a["heading"] for a in by_heading.items] == ["Alpha", "Bravo"]

    # Unknown columns fall back to published_at.
    fallback = await article_service.get_index_page(db_session, sort_by="password", sort_order="asc")
    assert [a["heading"] for a in fallback.items] == ["Bravo", "Alpha"]


@pytest.mark.asyncio
async def test_get_published_article_loads_relations(db_session: AsyncSession, factory):
    author = await factory.user(name="Grace")
    category = await factory.category(name="Compilers")
    article = await factory.article(author, category, heading="Parsing", keywords="lexer parser")

    data = await article_service.get_published_article(db_session, article.id, None)
    assert data is not None
    assert data["heading"] == "Parsing"
    assert data["author"]["name"] == "Grace"
    assert "email" not in data["author"]
    assert data["category"]["name"] == "Compilers"
    assert {k["name"] for k in data["keywords"]} == {"lexer", "parser"}
    assert data["is_editable"] is False


@pytest.mark.asyncio
async def test_get_published_article_missing(db_session: AsyncSession):
    assert await article_service.get_published_article(db_session, 99999, None) is None


@pytest.mark.asyncio
async def test_is_editable_per_caller(db_session: AsyncSession, factory):
    author = await factory.user()
    other = await factory.user()
    owner = await factory.user(role="owner")
    admin = await factory.user(role="admin")
    category = await factory.category()
    article = await factory.article(author, category)

    expectations = {None: False, author: True, other: False, owner: True, admin: True}
    for caller, expected in expectations.items():
        data = await article_service.get_published_article(db_session, article.id, caller)
        assert data["is_editable"] is expected


@pytest.mark.asyncio
async def test_get_related_articles(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    elsewhere = await factory.category()
    viewed = await factory.article(author, category, age_hours=1)
    newest = await factory.article(author, category, age_hours=2)
    middle = await factory.article(author, category, age_hours=3)
    oldest = await factory.article(author, category, age_hours=4)
    await factory.article(author, category, age_hours=5)
    await factory.article(author, category, published=False, age_hours=0)
    await factory.article(author, elsewhere, age_hours=0)

    data = await article_service.get_published_article(db_session, viewed.id, None)
    related = await article_service.get_related_articles(db_session, data)
    assert [a["id"] for a in related] == [newest.id, middle.id, oldest.id]
    assert all(a["category_id"] == category.id for a in related)
    assert viewed.id not in {a["id"] for a in related}


@pytest.mark.asyncio
async def test_search_articles_keyword_branch(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    tagged = await factory.article(author, category, heading="No match here", keywords="rustacean")

    result = await article_service.search_articles(db_session, "rust", path="/search?query_string=rust")
    assert [a["id"] for a in result.items] == [tagged.id]
    assert result.page_url(2) == "/search?query_string=rust&page=2"


@pytest.mark.asyncio
async def test_get_edit_form(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    article = await factory.article(author, category, heading="Form", keywords="php laravel php")

    form = await article_service.get_edit_form(db_session, article)
    assert form["heading"] == "Form"
    assert form["category_id"] == category.id
    assert form["keywords"] == "php laravel"


@pytest.mark.asyncio
async def test_get_admin_articles_scoping(db_session: AsyncSession, factory):
    author = await factory.user()
    other = await factory.user()
    admin = await factory.user(role="admin")
    category = await factory.category()
    await factory.article(author, category)
    await factory.article(other, category)
    await factory.article(other, category, is_deleted=True)

    assert (await article_service.get_admin_articles(db_session, author)).total == 1
    assert (await article_service.get_admin_articles(db_session, admin)).total == 2


# ---------------------------------------------------------------------------
# article_service: writes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article_via_service(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    form = ArticleForm(heading="Service made", content="Body", category_id=category.id, keywords="a b a")

    article = await article_service.create_article(db_session, form, author, "10.0.0.7")
    assert article.id is not None
    assert article.user_id == author.id
    assert article.published_at is not None
    assert article.address_id is not None
    assert article.is_comment_enabled is False
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == ["a", "b"]


@pytest.mark.asyncio
async def test_update_article_via_service(db_session: AsyncSession, factory):
    author = await factory.user()
    category = await factory.category()
    article = await factory.article(author, category, heading="Old", keywords="x y")
    form = ArticleForm(heading="New", content="New body", category_id=category.id, language="fr", keywords="y z")

    updated = await article_service.update_article(db_session, article, form)
    assert updated.heading == "New"
    assert updated.language == "fr"
    assert await keyword_service.get_article_keyword_names(db_session, article.id) == ["y", "z"]


# ---------------------------------------------------------------------------
# category_service / user_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_active_categories(db_session: AsyncSession, factory):
    await factory.category(name="Zebra")
    await factory.category(name="Apple")
    await factory.category(name="Hidden", is_active=False)

    categories = await category_service.get_active_categories(db_session)
    assert [c["name"] for c in categories] == ["Apple", "Zebra"]


@pytest.mark.asyncio
async def test_get_subscribed_users(db_session: AsyncSession, factory):
    subscriber = await factory.user(is_subscribed=True)
    await factory.user(is_subscribed=False)

    users = await user_service.get_subscribed_users(db_session)
    assert [u.id for u in users] == [subscriber.id]


# ---------------------------------------------------------------------------
# database
# ---------------------------------------------------------------------------

def test_engine_options_skip_pool_sizing_for_sqlite():
    from blog.database import engine_options

    assert "pool_size" not in engine_options("sqlite+aiosqlite:///:memory:")
    server = engine_options("postgresql+asyncpg://u:p@localhost/db")
    assert server["pool_size"] > 0
    assert server["pool_pre_ping"] is True
