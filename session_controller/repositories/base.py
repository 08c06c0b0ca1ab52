"""Shared DynamoDB client configuration for the data store repositories.

Uses aioboto3 for async operations.
"""
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, Optional

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from session_controller.config import Settings, settings as default_settings
from session_controller.exceptions import StoreError

logger = logging.getLogger(__name__)

STORE_ERRORS = (BotoCoreError, ClientError)


class DynamoDBClient:
    """
    Shared DynamoDB client configuration.

    Example:
        client = DynamoDBClient()

        async with client.table('users') as table:
            response = await table.get_item(Key={'user_id': user_id})
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self._endpoint_url = config.DYNAMODB_ENDPOINT
        self._region_name = config.DYNAMODB_REGION
        self._access_key = config.DYNAMODB_ACCESS_KEY
        self._secret_key = config.DYNAMODB_SECRET_KEY
        self._session = aioboto3.Session()

        # Configure retries and timeouts
        self._config = Config(
            retries={
                'max_attempts': 2,
                'mode': 'standard'
            },
            connect_timeout=3,
            read_timeout=5,
        )

        logger.debug(f"DynamoDB client configured for {self._endpoint_url}")

    @property
    def _resource_config(self) -> Dict[str, Any]:
        return {
            'endpoint_url': self._endpoint_url,
            'region_name': self._region_name,
            'aws_access_key_id': self._access_key,
            'aws_secret_access_key': self._secret_key,
            'config': self._config,
        }

    @asynccontextmanager
    async def table(self, table_name: str):
        """Get a table within a resource context that is closed on exit."""
        async with self._session.resource('dynamodb', **self._resource_config) as dynamodb:
            yield await dynamodb.Table(table_name)

    def __repr__(self) -> str:
        return f"DynamoDBClient(endpoint={self._endpoint_url}, region={self._region_name})"


class DynamoDBRepository:
    """Base for repositories: table access and error translation."""

    def __init__(self, client: DynamoDBClient):
        self.client = client

    @asynccontextmanager
    async def _get_table(self, table_name: str):
        """Yield a table; store failures surface as StoreError."""
        try:
            async with self.client.table(table_name) as table:
                yield table
        except STORE_ERRORS as e:
            logger.error(f"DynamoDB {table_name} operation failed: {e}")
            raise StoreError(f"{table_name}: {e}") from e


def from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back to int/float, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value
