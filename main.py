import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from loguru import logger

from config import Settings
from dataBase import create_client, ensure_indexes, get_database
from errors import setup_exception_handlers
from image_store import ImageStore, create_image_store
from routes import admin_routes, auth_routes, book_routes, conversation_routes, exchange_routes
from user_service import ensure_default_admin


def setup_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    client = None

    if getattr(app.state, "db", None) is None:
        logger.info("Connecting to MongoDB database {}", settings.mongo_db_name)
        client = create_client(settings)
        app.state.db = get_database(client, settings)

    if settings.create_indexes:
        await ensure_indexes(app.state.db)
    await ensure_default_admin(app.state.db, settings)
    logger.info("BookShare API started")

    yield

    if client is not None:
        client.close()
    logger.info("BookShare API stopped")


def create_app(
    settings: Optional[Settings] = None,
    db=None,
    image_store: Optional[ImageStore] = None,
) -> FastAPI:
    """Build the application. ``db`` and ``image_store`` are created from settings when omitted."""
    settings = settings or Settings.from_env()
    setup_logging(settings)

    app = FastAPI(title="BookShare API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.image_store = image_store or create_image_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/docs")

    @app.get("/health")
    def health():
        return {"success": True, "status": "ok"}

    app.include_router(auth_routes)
    app.include_router(book_routes)
    app.include_router(exchange_routes)
    app.include_router(conversation_routes)
    app.include_router(admin_routes)
    return app


app = create_app()
