"""
FastAPI application entrypoint.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.staticfiles import StaticFiles

from apps.api.config import Settings, get_settings
from apps.api.middleware import TempUploadCleanupMiddleware
from apps.api.routers import files
from packages.filesystem import AppException, FileSystem
from packages.filesystem.exceptions import app_exception_handler
from packages.filesystem.paths import get_public_storage_directory

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    routers: Sequence[APIRouter] = (),
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use instead of the cached environment settings
        routers: Application routers, included before the public files mount
    """
    settings = settings or get_settings()
    file_system = FileSystem(settings.filesystem_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await file_system.create_storage_directory_if_not_exists()
        logger.info(
            f"Filesystem ready: driver={file_system.driver}, "
            f"storage={file_system.config.storage_directory}"
        )
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.file_system = file_system

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_middleware(TempUploadCleanupMiddleware, file_system=file_system)

    # Include routers
    app.include_router(files.router)
    for router in routers:
        app.include_router(router)

    # Public files of the local driver; must stay the last route, it matches every path
    if file_system.driver == "local":
        app.mount(
            "/",
            StaticFiles(directory=get_public_storage_directory(file_system.config), check_dir=False),
            name="public-files",
        )

    return app


app = create_app()
