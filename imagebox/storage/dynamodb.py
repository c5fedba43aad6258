import boto3
from typing import Optional, Dict, Any, List
from botocore.exceptions import BotoCoreError, ClientError
import logging

from imagebox.exceptions import StartupError
from imagebox.settings import Settings

log = logging.getLogger(__name__)

# -------------------------
# DynamoDB Service
# -------------------------
class DynamoDBService:
    def __init__(self, settings: Settings):
        self.table_name = settings.dynamodb_table
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
        if settings.database_url:
            kwargs["endpoint_url"] = settings.database_url

        self.resource = session.resource("dynamodb", **kwargs)
        log.info("Initialized DynamoDB resource")

        # Ensure table exists at initialization
        try:
            self.ensure_table()
        except (BotoCoreError, ClientError) as e:
            log.error("Failed to connect to DynamoDB table %s: %s", self.table_name, e)
            raise StartupError(f"Cannot reach metadata store: {e}") from e

    # Refer here: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/dynamodb/client/create_table.html
    def ensure_table(self):
        try:
            table = self.resource.Table(self.table_name)
            table.load()
            log.debug("Table %s already exists", self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise
            table = self.resource.create_table(
                TableName=self.table_name,
                KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": "image_id", "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            table.wait_until_exists()
            log.info("Created table %s", self.table_name)

    def put_metadata(self, item: Dict[str, Any]):
        table = self.resource.Table(self.table_name)
        table.put_item(Item=item)
        log.debug("Inserted metadata %s", item.get("image_id"))

    def scan_all(self) -> List[Dict[str, Any]]:
        """Returns every item in the table, following pagination to the end."""
        table = self.resource.Table(self.table_name)
        scan_kwargs: Dict[str, Any] = {}
        items: List[Dict[str, Any]] = []
        while True:
            resp = table.scan(**scan_kwargs)
            items.extend(resp.get("Items", []))
            last_key: Optional[Dict[str, Any]] = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            scan_kwargs["ExclusiveStartKey"] = last_key

    def close(self):
        log.info("Closed DynamoDB resource")
