"""
Salter Exception Classes
"""

from enum import Enum
from typing import Optional


class SalterError(Exception):
    """Base exception for all Salter operations"""
    pass


class ConfigurationError(SalterError):
    """Raised when a secret source identifier or a setting is invalid"""
    pass


class SecretLoadError(SalterError):
    """Raised when key material is missing or unreadable"""
    pass


class SecretSaveError(SalterError):
    """Raised when key material cannot be persisted"""
    pass


class CryptoOperationError(SalterError):
    """Raised when encryption or decryption fails.

    The message is fixed per direction; the underlying cause is only
    reachable through ``__cause__``.
    """
    pass


class ValidationError(SalterError):
    """Raised when a persisted record fails structural validation"""
    pass


class RepositoryErrorKind(str, Enum):
    """Classification of the underlying cause of a RepositoryError."""
    FILE_NOT_FOUND = "file_not_found"
    ACCESS_DENIED = "access_denied"
    IO = "io"
    MALFORMED_DATA = "malformed_data"
    CRYPTO = "crypto"
    UNKNOWN = "unknown"


class RepositoryError(SalterError):
    """Raised when a repository operation fails during I/O or serialization"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        kind: RepositoryErrorKind = RepositoryErrorKind.UNKNOWN,
    ):
        super().__init__(message)
        self.operation = operation
        self.kind = kind


class RecordNotFoundError(RepositoryError):
    """Raised when the target record is not present in the cache"""

    def __init__(self, message: str = "The record does not exist.", operation: Optional[str] = None):
        super().__init__(message, operation=operation)


class UsernameError(SalterError):
    """Raised when a username violates the username policy"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidPasswordError(SalterError):
    """Raised when a password violates the password policy"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class UserAlreadyExistsError(SalterError):
    """Raised when a username is already taken"""

    def __init__(self, username: str, message: str = "User already exists"):
        super().__init__(message)
        self.username = username


class UserNotFoundError(SalterError):
    """Raised when the target user does not exist"""

    def __init__(self, username: str, message: str = "User does not exist"):
        super().__init__(message)
        self.username = username


class NoAuthenticatedUserError(SalterError):
    """Raised when an operation needs a session and none exists"""

    def __init__(self, message: str = "No user is currently authenticated."):
        super().__init__(message)


class InvalidOperationError(SalterError):
    """Raised when the store is in an inconsistent state (e.g. multiple default users)"""
    pass


class DefaultUserProtectedError(InvalidOperationError):
    """Raised when an operation would rename, delete or demote the default user"""
    pass


class PermissionDeniedError(SalterError):
    """Raised when the authenticated user lacks a required permission"""
    pass
