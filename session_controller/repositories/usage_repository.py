"""DynamoDB daily usage repository implementation"""
import logging
from typing import Dict, Optional

from botocore.exceptions import ClientError

from session_controller.config import Settings, settings as default_settings
from session_controller.domain.user import LimitKind
from session_controller.exceptions import StoreError
from session_controller.interfaces.repositories import IUsageRepository
from session_controller.repositories.base import DynamoDBClient, DynamoDBRepository, from_dynamo
from session_controller.utils.dates import utc_now

logger = logging.getLogger(__name__)


class DynamoDBUsageRepository(DynamoDBRepository, IUsageRepository):
    """
    Per-day usage counters.

    Table key: user_id (hash) + usage_date (range, YYYY-MM-DD).
    """

    def __init__(self, client: DynamoDBClient, config: Optional[Settings] = None):
        super().__init__(client)
        config = config or default_settings
        self.table_name = config.DAILY_USAGE_TABLE_NAME

    async def get_daily_usage(self, user_id: str, usage_date: str) -> Optional[Dict]:
        async with self._get_table(self.table_name) as table:
            response = await table.get_item(Key={'user_id': user_id, 'usage_date': usage_date})

        if 'Item' not in response:
            return None
        return from_dynamo(response['Item'])

    async def create_daily_usage(self, user_id: str, usage_date: str) -> None:
        """Create a zeroed row unless one already exists for that day."""
        now = utc_now().isoformat()
        item = {
            'user_id': user_id,
            'usage_date': usage_date,
            'created_at': now,
            'updated_at': now,
        }
        for kind in LimitKind:
            item[kind.value] = 0

        try:
            async with self._get_table(self.table_name) as table:
                await table.put_item(
                    Item=item,
                    ConditionExpression='attribute_not_exists(user_id)'
                )
        except StoreError as e:
            cause = e.__cause__
            if isinstance(cause, ClientError) and \
                    cause.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
                logger.debug(f"Usage row for {user_id} on {usage_date} already exists")
                return
            raise

    async def increment_usage(
        self,
        user_id: str,
        usage_date: str,
        kind: LimitKind,
        amount: int = 1
    ) -> int:
        """Atomically add to a counter (creating the row if needed)."""
        column = LimitKind(kind).value
        async with self._get_table(self.table_name) as table:
            response = await table.update_item(
                Key={'user_id': user_id, 'usage_date': usage_date},
                UpdateExpression='ADD #col :amount SET updated_at = :ua',
                ExpressionAttributeNames={'#col': column},
                ExpressionAttributeValues={':amount': amount, ':ua': utc_now().isoformat()},
                ReturnValues='UPDATED_NEW'
            )

        return int(from_dynamo(response.get('Attributes', {}).get(column, 0)))
