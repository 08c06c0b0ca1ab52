"""Data store interfaces (profile, usage and ownership records)"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from session_controller.domain.user import LimitKind


class IProfileRepository(ABC):
    """Interface for profile, role and daily-limit rows keyed by principal id.

    Lookups return None for an absent row and raise StoreError for a failed query.
    """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Dict]:
        """Get the core profile row"""
        pass

    @abstractmethod
    async def get_role(self, user_id: str) -> Optional[str]:
        """Get the assigned role name"""
        pass

    @abstractmethod
    async def get_daily_limits(self, user_id: str) -> Optional[Dict]:
        """Get the daily-limits row"""
        pass

    @abstractmethod
    async def update_last_login(self, user_id: str, logged_in_at: datetime) -> None:
        """Record a successful sign-in"""
        pass


class IUsageRepository(ABC):
    """Interface for per-day usage counters"""

    @abstractmethod
    async def get_daily_usage(self, user_id: str, usage_date: str) -> Optional[Dict]:
        """Get the usage row for a calendar day (YYYY-MM-DD)"""
        pass

    @abstractmethod
    async def create_daily_usage(self, user_id: str, usage_date: str) -> None:
        """Create a zeroed usage row for a calendar day"""
        pass

    @abstractmethod
    async def increment_usage(
        self,
        user_id: str,
        usage_date: str,
        kind: LimitKind,
        amount: int = 1
    ) -> int:
        """Atomically add to a counter and return the stored value"""
        pass


class IOwnershipRepository(ABC):
    """Interface for resource ownership records"""

    @abstractmethod
    async def is_owner(self, user_id: str, resource_type: str, resource_id: str) -> bool:
        """Check whether the resource belongs to the user"""
        pass
