"""Custom exceptions for the session controller."""


class SessionControllerError(Exception):
    """Base exception for the session controller."""
    pass


class IdentityBackendError(SessionControllerError):
    """Raised when the identity backend is unreachable or replies unexpectedly."""
    pass


class CredentialsRejectedError(IdentityBackendError):
    """Raised when the identity backend refuses the supplied credentials."""
    pass


class StoreError(SessionControllerError):
    """Raised when a data store query fails."""
    pass


class ProfileNotFoundError(StoreError):
    """Raised when the core profile row is not (yet) visible to the principal."""
    pass
