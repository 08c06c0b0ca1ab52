"""Default notifier: writes user-facing notifications to the log."""
import logging
from typing import Any

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Implements INotifier by logging each notification with its context."""

    def info(self, key: str, **context: Any) -> None:
        logger.info(f"[notify] {key} {context}")

    def warning(self, key: str, **context: Any) -> None:
        logger.warning(f"[notify] {key} {context}")

    def error(self, key: str, **context: Any) -> None:
        logger.error(f"[notify] {key} {context}")
