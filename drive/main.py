import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from drive.core.config import Settings, get_settings
from drive.core.errors import register_exception_handlers
from drive.core.logging import configure_logging
from drive.core.middleware import MethodOverrideMiddleware
from drive.models.database import Database
from drive.routers import auth, files, folders
from drive.storage.factory import build_blob_store

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    database = Database(settings.database_url)
    database.create_all()
    blob_store = build_blob_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        database.dispose()

    app = FastAPI(title="Drive", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.blob_store = blob_store

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
    )
    app.add_middleware(MethodOverrideMiddleware)

    register_exception_handlers(app)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    # include our routers
    app.include_router(auth.router)
    app.include_router(folders.router)
    app.include_router(files.router)

    logger.info("Drive started with %s blob storage", blob_store.name)
    return app
