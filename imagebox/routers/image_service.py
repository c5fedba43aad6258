from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
import logging

from imagebox.settings import Settings
from imagebox.storage.disk import DiskStorage
from imagebox.storage.dynamodb import DynamoDBService
from imagebox.dependencies.dependencies import get_settings, get_disk_storage, get_dynamodb_service
from imagebox.image_service.service import (
    check_content_type,
    check_declared_length,
    check_size,
    fetch_images,
    save_image_and_meta,
    to_public,
    validate_image_bytes,
)
from imagebox.image_service.models import UploadResponse, ListImagesResponse
from imagebox.exceptions import NoFileException, TooManyFilesException

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["images"]
)

@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_image(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    disk: DiskStorage = Depends(get_disk_storage),
    db: DynamoDBService = Depends(get_dynamodb_service),
):
    """Stores a single image sent as the multipart field `image`."""
    response.headers["X-Content-Type-Options"] = "nosniff"

    check_declared_length(request.headers.get("content-length"), settings.max_upload_size)

    async with request.form() as form:
        parts = form.getlist("image")
        if len(parts) > 1:
            raise TooManyFilesException()
        image = parts[0] if parts else None
        if not isinstance(image, UploadFile) or not image.filename:
            raise NoFileException()

        # Type is checked before a single byte is read
        check_content_type(image.content_type)

        # One byte past the limit is enough to know it is too large
        contents = await image.read(settings.max_upload_size + 1)
        check_size(len(contents), settings.max_upload_size)

        if settings.verify_image_content:
            validate_image_bytes(contents, image.content_type)

        original_name = image.filename
        content_type = image.content_type

    record = await run_in_threadpool(
        save_image_and_meta,
        db=db,
        disk=disk,
        data=contents,
        original_name=original_name,
        content_type=content_type,
    )
    return UploadResponse(image=to_public(record, settings.public_base_url))

@router.get("/images", response_model=ListImagesResponse)
def list_images_handler(
    settings: Settings = Depends(get_settings),
    db: DynamoDBService = Depends(get_dynamodb_service),
):
    """Lists every uploaded image, most recent first."""
    images = [to_public(record, settings.public_base_url) for record in fetch_images(db)]
    return ListImagesResponse(count=len(images), images=images)
