"""DynamoDB resource ownership repository implementation"""
import logging
from typing import Optional

from session_controller.config import Settings, settings as default_settings
from session_controller.interfaces.repositories import IOwnershipRepository
from session_controller.repositories.base import DynamoDBClient, DynamoDBRepository

logger = logging.getLogger(__name__)


def resource_key(resource_type: str, resource_id: str) -> str:
    return f"{resource_type}#{resource_id}"


class DynamoDBOwnershipRepository(DynamoDBRepository, IOwnershipRepository):
    """
    Resource ownership records.

    Table key: user_id (hash) + resource_key (range, "<type>#<id>").
    """

    def __init__(self, client: DynamoDBClient, config: Optional[Settings] = None):
        super().__init__(client)
        config = config or default_settings
        self.table_name = config.RESOURCE_OWNERSHIP_TABLE_NAME

    async def is_owner(self, user_id: str, resource_type: str, resource_id: str) -> bool:
        async with self._get_table(self.table_name) as table:
            response = await table.get_item(
                Key={'user_id': user_id, 'resource_key': resource_key(resource_type, resource_id)},
                ProjectionExpression='user_id'
            )
        return 'Item' in response
