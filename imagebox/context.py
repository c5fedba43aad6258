from dataclasses import dataclass

from imagebox.settings import Settings
from imagebox.storage.disk import DiskStorage
from imagebox.storage.dynamodb import DynamoDBService


@dataclass(frozen=True)
class AppContext:
    """Everything a request handler needs, built once at startup."""
    settings: Settings
    disk: DiskStorage
    db: DynamoDBService
