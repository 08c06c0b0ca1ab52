"""DynamoDB profile repository implementation"""
import logging
from datetime import datetime
from typing import Dict, Optional

from session_controller.config import Settings, settings as default_settings
from session_controller.interfaces.repositories import IProfileRepository
from session_controller.repositories.base import DynamoDBClient, DynamoDBRepository, from_dynamo

logger = logging.getLogger(__name__)


class DynamoDBProfileRepository(DynamoDBRepository, IProfileRepository):
    """DynamoDB implementation of the profile, role and daily-limit lookups"""

    def __init__(self, client: DynamoDBClient, config: Optional[Settings] = None):
        super().__init__(client)
        config = config or default_settings
        self.users_table = config.USERS_TABLE_NAME
        self.roles_table = config.USER_ROLES_TABLE_NAME
        self.limits_table = config.DAILY_LIMITS_TABLE_NAME

    async def get_profile(self, user_id: str) -> Optional[Dict]:
        """Get the core profile row"""
        async with self._get_table(self.users_table) as table:
            response = await table.get_item(Key={'user_id': user_id})

        if 'Item' not in response:
            return None
        return from_dynamo(response['Item'])

    async def get_role(self, user_id: str) -> Optional[str]:
        """Get the assigned role name"""
        async with self._get_table(self.roles_table) as table:
            response = await table.get_item(Key={'user_id': user_id})

        item = response.get('Item')
        if not item:
            return None
        return item.get('role')

    async def get_daily_limits(self, user_id: str) -> Optional[Dict]:
        """Get the daily-limits row"""
        async with self._get_table(self.limits_table) as table:
            response = await table.get_item(Key={'user_id': user_id})

        if 'Item' not in response:
            return None
        return from_dynamo(response['Item'])

    async def update_last_login(self, user_id: str, logged_in_at: datetime) -> None:
        """Record a successful sign-in"""
        async with self._get_table(self.users_table) as table:
            await table.update_item(
                Key={'user_id': user_id},
                UpdateExpression='SET last_login = :ll',
                ExpressionAttributeValues={':ll': logged_in_at.isoformat()}
            )
        logger.debug(f"Updated last_login for {user_id}")
