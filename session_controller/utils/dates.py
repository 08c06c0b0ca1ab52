"""Date helpers (usage counters are keyed by UTC calendar day)."""
import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> str:
    """Today's UTC date as YYYY-MM-DD."""
    return utc_now().date().isoformat()


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the store.

    None, empty and unparseable values all come back as None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring malformed timestamp {value!r}")
        return None
