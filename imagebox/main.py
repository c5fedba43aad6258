from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
import logging

from imagebox.context import AppContext
from imagebox.cors import add_cors
from imagebox.storage.disk import DiskStorage
from imagebox.storage.dynamodb import DynamoDBService
from imagebox.settings import Settings, get_settings
from imagebox.routers.image_service import router as image_router
from imagebox.image_service.models import HealthResponse
from imagebox.exceptions import add_exception_handlers

log = logging.getLogger("imagebox")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
        Builds the application. The upload directory is prepared here and the
        metadata store is connected in the lifespan; a failure in either one
        raises StartupError and the service never starts serving.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    disk = DiskStorage(settings.upload_dir)
    destination = disk.resolve_destination()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Initialize resources
        db = DynamoDBService(settings)
        app.state.ctx = AppContext(settings=settings, disk=disk, db=db)
        log.info("Uploads directory: %s", destination)
        log.info("Base URL: %s", settings.public_base_url)
        log.info("Metadata table: %s", settings.dynamodb_table)
        yield
        # Cleanup resources
        db.close()
        disk.close()

    app = FastAPI(
        title=settings.app_title,
        lifespan=lifespan,
        description="Image Upload Service",
    )

    # Add exception handlers
    add_exception_handlers(app)

    add_cors(app, settings)

    # Add the routers
    app.include_router(image_router)

    # Check Health
    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return HealthResponse()

    # Raw files, served straight from disk
    app.mount("/uploads", StaticFiles(directory=destination), name="uploads")

    return app


def main():
    settings = get_settings()
    uvicorn.run("imagebox.main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
