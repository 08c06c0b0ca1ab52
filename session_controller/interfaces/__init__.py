"""Interfaces the session controller depends on (Dependency Inversion Principle)."""
from .identity_backend import AuthEventListener, IIdentityBackend
from .notifier import INotifier
from .repositories import IOwnershipRepository, IProfileRepository, IUsageRepository

__all__ = [
    "AuthEventListener",
    "IIdentityBackend",
    "INotifier",
    "IOwnershipRepository",
    "IProfileRepository",
    "IUsageRepository",
]
