from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_title: str = "Image Upload Service"
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 3001
    # Public address used to build download links, defaults to http://localhost:<port>
    base_url: Optional[str] = None

    upload_dir: str = "uploads"
    max_upload_size: int = Field(5 * 1024 * 1024, gt=0)
    verify_image_content: bool = False

    # DynamoDB endpoint, e.g. http://localhost:8000 for DynamoDB Local
    database_url: Optional[str] = None
    dynamodb_table: str = "Images"
    aws_region: str = "us-east-1"
    aws_access_key_id: str = "test"
    aws_secret_access_key: str = "test"

    cors_allowed_origins: List[str] = ["http://localhost:3000"]

    @property
    def public_base_url(self) -> str:
        base = self.base_url or f"http://localhost:{self.port}"
        return base.rstrip("/")

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.rstrip("/") for origin in self.cors_allowed_origins]


def get_settings() -> Settings:
    return Settings()
