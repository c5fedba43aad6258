import io
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

from imagebox.image_service import service
from imagebox.image_service.models import ImageRecord
from imagebox.storage.disk import DiskStorage
from imagebox.exceptions import (
    FileTooLargeException,
    InvalidImageException,
    InvalidImageTypeException,
    PersistenceException,
    StorageException,
)
from conftest import make_png_bytes


def client_error(op):
    return ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, op)


# ------------------------------
# check_content_type / check_size
# ------------------------------

@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/gif", "image/webp"])
def test_whitelisted_types_pass(content_type):
    service.check_content_type(content_type)


@pytest.mark.parametrize("content_type", ["text/plain", "image/svg+xml", "application/pdf", None])
def test_other_types_rejected(content_type):
    with pytest.raises(InvalidImageTypeException):
        service.check_content_type(content_type)


def test_check_size():
    service.check_size(10, 10)
    with pytest.raises(FileTooLargeException):
        service.check_size(11, 10)


def test_check_declared_length():
    limit = 5 * 1024 * 1024
    service.check_declared_length(None, limit)
    service.check_declared_length("garbage", limit)
    service.check_declared_length(str(limit + 500), limit)
    with pytest.raises(FileTooLargeException):
        service.check_declared_length(str(10 * 1024 * 1024), limit)


# ------------------------------
# validate_image_bytes
# ------------------------------

def test_validate_png_bytes_ok():
    data = make_png_bytes()
    result = service.validate_image_bytes(data, "image/png")
    assert result == "image/png"


def test_validate_invalid_bytes_raises():
    with pytest.raises(InvalidImageException):
        service.validate_image_bytes(b"notanimage", "image/png")


def test_validate_mismatched_type_raises():
    with pytest.raises(InvalidImageException):
        service.validate_image_bytes(make_png_bytes(), "image/jpeg")


# ------------------------------
# save_image_and_meta
# ------------------------------

def test_save_image_and_meta_success(mocker, tmp_path):
    mock_db = mocker.Mock()
    disk = DiskStorage(str(tmp_path))

    image = service.save_image_and_meta(
        db=mock_db,
        disk=disk,
        data=b"12345",
        original_name="test.png",
        content_type="image/png",
    )

    assert image.original_name == "test.png"
    assert image.filename.startswith("img-") and image.filename.endswith(".png")
    assert image.size == 5
    assert image.path == os.path.join(str(tmp_path), image.filename)
    with open(image.path, "rb") as fh:
        assert fh.read() == b"12345"

    mock_db.put_metadata.assert_called_once()
    item = mock_db.put_metadata.call_args.args[0]
    assert item["image_id"] == image.image_id
    assert item["mime_type"] == "image/png"
    assert isinstance(item["created_at"], str)


def test_save_image_and_meta_db_error(mocker, tmp_path):
    mock_db = mocker.Mock()
    mock_db.put_metadata.side_effect = client_error("PutItem")
    disk = DiskStorage(str(tmp_path))

    with pytest.raises(PersistenceException) as excinfo:
        service.save_image_and_meta(
            db=mock_db,
            disk=disk,
            data=b"x",
            original_name="f.png",
            content_type="image/png",
        )
    assert excinfo.value.status_code == 500
    assert "boom" not in excinfo.value.message
    assert len(os.listdir(tmp_path)) == 1


def test_save_image_and_meta_disk_error(mocker):
    mock_db = mocker.Mock()
    disk = mocker.Mock()
    disk.generate_filename.return_value = "img-1.png"
    disk.write.side_effect = OSError("disk full")

    with pytest.raises(StorageException):
        service.save_image_and_meta(
            db=mock_db,
            disk=disk,
            data=b"x",
            original_name="f.png",
            content_type="image/png",
        )
    mock_db.put_metadata.assert_not_called()


# ------------------------------
# fetch_images
# ------------------------------

def make_item(name, created_at, filename):
    return {
        "image_id": name,
        "filename": filename,
        "original_name": f"{name}.png",
        "path": f"/tmp/{filename}",
        "size": Decimal("42"),
        "mime_type": "image/png",
        "created_at": created_at.isoformat(),
    }


def test_fetch_images_sorted_newest_first(mocker):
    now = datetime.now(timezone.utc)
    mock_db = mocker.Mock()
    mock_db.scan_all.return_value = [
        make_item("old", now - timedelta(minutes=5), "img-1.png"),
        make_item("new", now, "img-3.png"),
        make_item("mid", now - timedelta(minutes=1), "img-2.png"),
    ]

    records = service.fetch_images(mock_db)
    assert [r.image_id for r in records] == ["new", "mid", "old"]
    assert all(isinstance(r.size, int) and r.size == 42 for r in records)


def test_fetch_images_same_timestamp_uses_filename(mocker):
    now = datetime.now(timezone.utc)
    mock_db = mocker.Mock()
    mock_db.scan_all.return_value = [
        make_item("first", now, "img-100.png"),
        make_item("second", now, "img-101.png"),
    ]
    assert [r.image_id for r in service.fetch_images(mock_db)] == ["second", "first"]


def test_fetch_images_empty(mocker):
    mock_db = mocker.Mock()
    mock_db.scan_all.return_value = []
    assert service.fetch_images(mock_db) == []


def test_fetch_images_error(mocker):
    mock_db = mocker.Mock()
    mock_db.scan_all.side_effect = client_error("Scan")
    with pytest.raises(PersistenceException):
        service.fetch_images(mock_db)


# ------------------------------
# to_public
# ------------------------------

def test_to_public():
    created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    record = ImageRecord(
        image_id="abc",
        filename="img-1700000000000.png",
        original_name="cat.png",
        path="/data/img-1700000000000.png",
        size=10240,
        mime_type="image/png",
        created_at=created,
    )
    item = service.to_public(record, "https://img.example.com")
    assert item.id == "abc"
    assert item.name == "cat.png"
    assert item.url == "https://img.example.com/uploads/img-1700000000000.png"
    assert item.size == 10240
    assert item.uploadedAt == created
