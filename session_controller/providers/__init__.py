"""Identity backend implementations."""
from .http_identity_backend import HttpIdentityBackend

__all__ = ["HttpIdentityBackend"]
