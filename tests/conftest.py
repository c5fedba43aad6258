import io
import os
import pytest
from moto import mock_aws
from fastapi.testclient import TestClient
from PIL import Image

# Dummy AWS credentials for moto, set BEFORE anything creates a boto3 session
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
# Make sure a local DynamoDB endpoint is not picked up instead of moto
os.environ.pop("DATABASE_URL", None)

from imagebox.main import create_app
from imagebox.settings import Settings
from imagebox.storage.dynamodb import DynamoDBService


def make_png_bytes(color="red"):
    """Generate a simple valid PNG in-memory."""
    img = Image.new("RGB", (10, 10), color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir):
    return Settings(
        _env_file=None,
        upload_dir=str(upload_dir),
        base_url="http://testserver",
        database_url=None,
        dynamodb_table="Images",
        aws_region="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        cors_allowed_origins=["http://localhost:3000"],
    )


@pytest.fixture
def aws():
    with mock_aws():
        yield


@pytest.fixture
def db(settings, aws):
    return DynamoDBService(settings)


@pytest.fixture
def test_client(settings, aws):
    app = create_app(settings)
    with TestClient(app) as client:
        yield client
