"""DynamoDB implementations of the data store interfaces."""
from .base import DynamoDBClient
from .ownership_repository import DynamoDBOwnershipRepository
from .profile_repository import DynamoDBProfileRepository
from .usage_repository import DynamoDBUsageRepository

__all__ = [
    "DynamoDBClient",
    "DynamoDBOwnershipRepository",
    "DynamoDBProfileRepository",
    "DynamoDBUsageRepository",
]
