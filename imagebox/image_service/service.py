from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional
import logging

from PIL import Image, UnidentifiedImageError
from botocore.exceptions import BotoCoreError, ClientError

from imagebox.storage.disk import DiskStorage
from imagebox.storage.dynamodb import DynamoDBService
from imagebox.image_service.models import ImageRecord, ImageItem
from imagebox.exceptions import (
    FileTooLargeException,
    InvalidImageException,
    InvalidImageTypeException,
    PersistenceException,
    StorageException,
)

log = logging.getLogger(__name__)

# Allowed content types
ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
}

PIL_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def check_content_type(content_type: str):
    """Rejects anything outside the whitelist."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidImageTypeException(content_type)


def check_size(size: int, limit: int):
    if size > limit:
        raise FileTooLargeException(limit)


# Room for multipart boundaries and part headers around the file itself
MULTIPART_OVERHEAD = 64 * 1024


def check_declared_length(content_length: Optional[str], limit: int):
    """Rejects a request whose Content-Length alone rules it out, before the body is parsed."""
    try:
        declared = int(content_length)
    except (TypeError, ValueError):
        return
    if declared > limit + MULTIPART_OVERHEAD:
        raise FileTooLargeException(limit)


def validate_image_bytes(file_bytes: bytes, content_type: str) -> str:
    """Validate that the uploaded bytes are an image of the declared type."""
    try:
        img = Image.open(BytesIO(file_bytes))
        img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise InvalidImageException("Invalid image file") from e
    detected = PIL_FORMAT_TO_MIME.get((img.format or "").upper())
    if detected != content_type:
        raise InvalidImageException(f"File content does not match declared type {content_type}")
    return detected


def save_image_and_meta(
    db: DynamoDBService,
    disk: DiskStorage,
    data: bytes,
    original_name: str,
    content_type: str,
) -> ImageRecord:
    """Writes the image to disk, then persists its metadata.

    The two steps are not transactional: if the store write fails the file
    stays on disk without a record.
    """
    filename = disk.generate_filename(original_name)
    try:
        path = disk.write(filename, data)
    except OSError as e:
        log.error("Disk write failed for %s: %s", filename, e)
        raise StorageException()

    image = ImageRecord(
        filename=filename,
        original_name=original_name,
        path=path,
        size=len(data),
        mime_type=content_type,
    )
    try:
        db.put_metadata(record_to_item(image))
    except (BotoCoreError, ClientError) as e:
        log.error("DynamoDB put_metadata failed, orphaned file left at %s: %s", path, e)
        raise PersistenceException("Failed to save image")

    log.info("Saved image %s as %s (%d bytes)", image.image_id, filename, image.size)
    return image


def fetch_images(db: DynamoDBService) -> List[ImageRecord]:
    """Fetches every record, most recent first."""
    try:
        items = db.scan_all()
    except (BotoCoreError, ClientError) as e:
        log.error("DynamoDB fetch_images failed: %s", e)
        raise PersistenceException("Failed to fetch images")
    records = [item_to_record(it) for it in items]
    records.sort(key=lambda r: (r.created_at, r.filename), reverse=True)
    return records


def record_to_item(image: ImageRecord) -> Dict[str, Any]:
    item = image.model_dump()
    # Dynamo needs created_at as ISO string
    item["created_at"] = image.created_at.isoformat()
    return item


def item_to_record(item: Dict[str, Any]) -> ImageRecord:
    return ImageRecord(
        image_id=item["image_id"],
        filename=item["filename"],
        original_name=item["original_name"],
        path=item["path"],
        size=int(item["size"]),
        mime_type=item["mime_type"],
        created_at=datetime.fromisoformat(item["created_at"]),
    )


def to_public(image: ImageRecord, base_url: str) -> ImageItem:
    return ImageItem(
        id=image.image_id,
        name=image.original_name,
        url=f"{base_url}/uploads/{image.filename}",
        size=image.size,
        uploadedAt=image.created_at,
    )
