from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from blog import __version__
from blog.cache import cache
from blog.config import settings
from blog.logging_config import setup_logging
from blog.mailer import mail_queue
from blog.middleware import TimingMiddleware
from blog.routers import articles


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    try:
        await cache.connect()
    except Exception:
        pass  # App works without Redis
    mail_queue.bind(cache.client)
    yield
    mail_queue.bind(None)
    await cache.disconnect()


app = FastAPI(
    title=settings.SITE_NAME,
    description="Blog article management: publishing, keyword tagging, search and subscriber notifications",
    version=__version__,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    session_cookie="blog_session",
    https_only=settings.is_production,
)

# Routers
app.include_router(articles.router)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": __version__,
        "cache": cache.stats,
        "mail": mail_queue.stats,
    }
