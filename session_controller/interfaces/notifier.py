"""
Notification interface.

The controller reports recoverable failures and advisories (quota warnings,
inactivity warnings, profile load failures) through this seam. Rendering them
(toasts, banners, webhooks) belongs to the caller.
"""
from typing import Any, Protocol


class INotifier(Protocol):
    """
    Interface for user-facing notifications.

    Implementations:
    - LoggingNotifier (default, writes to the log)
    - MagicMock (for testing)
    """

    def info(self, key: str, **context: Any) -> None:
        ...

    def warning(self, key: str, **context: Any) -> None:
        ...

    def error(self, key: str, **context: Any) -> None:
        ...
