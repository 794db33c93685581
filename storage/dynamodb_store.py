"""DynamoDB-backed key/value store for JSON blobs."""
import json
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class DynamoDBPropertyStore:
    """Stores JSON values under string keys in a DynamoDB table."""

    KEY_ATTRIBUTE = 'key'
    VALUE_ATTRIBUTE = 'value'

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBPropertyStore for table: {table_name}")

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a value.

        Args:
            key: Property key

        Returns:
            Decoded JSON value, or None if the key is not present
        """
        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error reading property {key} from {self.table_name}: {e}")
            raise

        item = response.get('Item')
        if item is None:
            return None
        return json.loads(item[self.VALUE_ATTRIBUTE])

    def get_all(self) -> Dict[str, Any]:
        """
        Retrieve every property using a paginated Scan.

        Returns:
            Dictionary mapping key to decoded JSON value
        """
        logger.info(f"Scanning DynamoDB table {self.table_name} for all properties")

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        properties = {}
        for item in items:
            try:
                properties[item[self.KEY_ATTRIBUTE]] = json.loads(item[self.VALUE_ATTRIBUTE])
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed property item: {e}")

        logger.info(f"Retrieved {len(properties)} properties from DynamoDB")
        return properties

    def put(self, key: str, value: Any) -> None:
        """Write a JSON-serializable value under a key."""
        try:
            self.table.put_item(Item={
                self.KEY_ATTRIBUTE: key,
                self.VALUE_ATTRIBUTE: json.dumps(value)
            })
        except ClientError as e:
            logger.error(f"Error writing property {key} to {self.table_name}: {e}")
            raise

    def delete(self, key: str) -> None:
        """Delete a key; deleting a missing key is a no-op."""
        try:
            self.table.delete_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error deleting property {key} from {self.table_name}: {e}")
            raise
