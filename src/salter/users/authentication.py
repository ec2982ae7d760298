# Salter: Authentication Service
#
# Holds the single authenticated session and enforces the username and
# password policies.
#
# Failed authentication is a plain False for both "unknown username" and
# "wrong password", so callers cannot enumerate accounts.

import logging
import re
from typing import Optional

from ..core.audit_log import EventSeverity, EventType, log_security_event
from ..core.secure_memory import SecretInput, to_secret_buffer, zero_buffer
from ..exceptions import (
    DefaultUserProtectedError,
    InvalidPasswordError,
    NoAuthenticatedUserError,
    PermissionDeniedError,
    UsernameError,
)
from ..password_hasher import PasswordHasher
from .role import Permission
from .user import User
from .user_manager import UserManager

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 8
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 8

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
# At least one lowercase, one uppercase, one digit and one non-alphanumeric.
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^\da-zA-Z]).{8,}$", re.DOTALL)


def validate_password(password: SecretInput) -> None:
    """
    Check the password policy.

    Raises:
        InvalidPasswordError: with the specific reason
    """
    if isinstance(password, str):
        text = password
    else:
        try:
            text = bytes(password).decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidPasswordError("Password must be valid UTF-8 text.") from None

    if len(text) < PASSWORD_MIN_LENGTH:
        raise InvalidPasswordError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")

    if not PASSWORD_PATTERN.match(text):
        raise InvalidPasswordError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character."
        )


class AuthenticationService:
    """
    Authenticates users against the UserManager's cache and tracks the
    current session.
    """

    def __init__(self, user_manager: UserManager, password_hasher: PasswordHasher):
        self.user_manager = user_manager
        self.hasher = password_hasher
        self._current_user: Optional[User] = None

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    @property
    def is_authenticated(self) -> bool:
        return self._current_user is not None

    def _require_session(self) -> User:
        if self._current_user is None:
            raise NoAuthenticatedUserError()
        return self._current_user

    # ── Policies ─────────────────────────────────────────────────────

    def validate_username(self, username: str) -> None:
        """
        Check the username policy, including that it is not already taken.

        Raises:
            UsernameError: with the specific reason
        """
        if not isinstance(username, str) or not (
            USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH
        ):
            raise UsernameError(
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters long."
            )

        if not USERNAME_PATTERN.match(username):
            raise UsernameError("Username must contain only letters, numbers, underscores, and dashes.")

        if not username[0].isalpha():
            raise UsernameError("Username must start with a letter.")

        if self.user_manager.get_user_by_username(username) is not None:
            raise UsernameError("Username already exists.")

    validate_password = staticmethod(validate_password)

    # ── Session ──────────────────────────────────────────────────────

    async def authenticate(self, username: str, password: SecretInput) -> bool:
        """
        Check credentials and, on success, make that user the session.

        Unknown usernames and wrong passwords both return False and leave
        the session unchanged.
        """
        buffer = to_secret_buffer(password)
        try:
            user = self.user_manager.get_user_by_username(username)
            if user is None or len(buffer) == 0:
                is_authenticated = False
            else:
                is_authenticated = self.hasher.validate(buffer, user.password_hash, user.salt)
        finally:
            zero_buffer(buffer)
            zero_buffer(password)

        if is_authenticated:
            self._current_user = user
            log_security_event(
                EventType.USER_LOGIN,
                EventSeverity.INFO,
                "User authenticated",
                details={"username": username},
            )
        else:
            log_security_event(
                EventType.USER_LOGIN_FAILED,
                EventSeverity.INVESTIGATE,
                "Authentication failed",
                details={"username": username},
            )

        return is_authenticated

    async def authenticate_current_user(self, password: SecretInput) -> bool:
        """
        Re-check the password of the session's own user.

        Raises:
            NoAuthenticatedUserError: no session
        """
        try:
            current = self._require_session()
        except NoAuthenticatedUserError:
            zero_buffer(password)
            raise
        return await self.authenticate(current.username, password)

    async def register(self, username: str, password: SecretInput) -> User:
        """
        Create a new account after checking both policies.

        Raises:
            UsernameError, InvalidPasswordError: policy violations
            UserAlreadyExistsError: lost a race for the username
        """
        try:
            self.validate_username(username)
            validate_password(password)
            user = await self.user_manager.add_user(username, password)
        finally:
            zero_buffer(password)

        log_security_event(
            EventType.USER_REGISTERED,
            EventSeverity.INFO,
            "Account registered",
            details={"username": username},
        )
        return user

    def logout(self) -> None:
        """Clear the session unconditionally."""
        if self._current_user is not None:
            log_security_event(
                EventType.USER_LOGOUT,
                EventSeverity.INFO,
                "User logged out",
                details={"username": self._current_user.username},
            )
        self._current_user = None

    async def refresh_current_user(self) -> User:
        """
        Re-read the session's record from disk to pick up profile changes.

        Raises:
            NoAuthenticatedUserError: no session, or the record is gone
        """
        current = self._require_session()
        for user in await self.user_manager.get_users():
            if user.id == current.id:
                self._current_user = user
                return user

        self._current_user = None
        raise NoAuthenticatedUserError("The authenticated user no longer exists.")

    def require_permission(self, permission: Permission) -> User:
        """
        Raises:
            NoAuthenticatedUserError: no session
            PermissionDeniedError: the session's role lacks ``permission``
        """
        current = self._require_session()
        if not current.has_permission(permission):
            raise PermissionDeniedError(
                f"Role '{current.role.role_name}' does not grant {permission.name}."
            )
        return current

    # ── Profile ──────────────────────────────────────────────────────

    async def change_username(self, new_username: str, password: SecretInput) -> bool:
        """
        Rename the session's account after re-authenticating.

        Returns False if the password is wrong.

        Raises:
            NoAuthenticatedUserError: no session
            DefaultUserProtectedError: session is the default user
            UsernameError: new username violates the policy
        """
        try:
            current = self._require_session()
            if current.is_default:
                raise DefaultUserProtectedError("The default user's username cannot be changed.")
            self.validate_username(new_username)
        except Exception:
            zero_buffer(password)
            raise

        if not await self.authenticate_current_user(password):
            return False

        await self.user_manager.update_user(current.with_username(new_username))
        await self.refresh_current_user()
        return True

    async def change_password(self, current_password: SecretInput, new_password: SecretInput) -> bool:
        """
        Re-hash the session's account under a new password after
        re-authenticating with the current one.

        Returns False if the current password is wrong.

        Raises:
            NoAuthenticatedUserError: no session
            InvalidPasswordError: new password violates the policy
        """
        try:
            self._require_session()
            validate_password(new_password)
            if not await self.authenticate_current_user(current_password):
                return False
            password_hash, salt = self.hasher.generate_hash(new_password)
        finally:
            zero_buffer(current_password)
            zero_buffer(new_password)

        await self.user_manager.update_user(self._current_user.with_credentials(password_hash, salt))
        await self.refresh_current_user()
        return True

    async def delete_current_user(self, password: SecretInput) -> bool:
        """
        Delete the session's account after re-authenticating, then log out.

        Returns False if the password is wrong.

        Raises:
            NoAuthenticatedUserError: no session
            DefaultUserProtectedError: session is the default user
        """
        try:
            current = self._require_session()
            if current.is_default:
                raise DefaultUserProtectedError("The default user cannot be deleted.")
        except Exception:
            zero_buffer(password)
            raise

        if not await self.authenticate_current_user(password):
            return False

        await self.user_manager.remove_user(current)
        self.logout()
        return True
