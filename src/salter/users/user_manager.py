# Salter: User Manager
#
# Account lifecycle (create / update / remove / list) on top of a
# Repository[User], and the "exactly one default administrator" invariant:
#   - enforced at startup by initialize()
#   - protected afterwards by update_user() / remove_user() / set_role()

import logging
from typing import List, Optional, Union
from uuid import UUID

from ..core.audit_log import EventSeverity, EventType, log_security_event
from ..core.secure_memory import SecretInput, zero_buffer
from ..exceptions import (
    DefaultUserProtectedError,
    InvalidOperationError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ..password_hasher import PasswordHasher
from ..persistence.repository import Repository
from .role import Role
from .user import DEFAULT_USERNAME, User

logger = logging.getLogger(__name__)


class UserManager:
    """
    Manages creation, retrieval, updating and deletion of user accounts.

    Args:
        repository: Store of User records
        password_hasher: Hasher used for new accounts
    """

    def __init__(self, repository: Repository[User], password_hasher: PasswordHasher):
        self.repository = repository
        self.password_hasher = password_hasher

    # ── Startup ──────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Initialize the repository and enforce the default-user invariant.

        Raises:
            InvalidOperationError: more than one default user is stored
                (the store is corrupt; nothing is repaired)
            RepositoryError: the store cannot be created or read
        """
        await self.repository.initialize()
        await self._ensure_default_user()

    async def _ensure_default_user(self) -> None:
        defaults = [user for user in self.repository.cache if user.is_default]

        if len(defaults) > 1:
            log_security_event(
                EventType.STORE_ERROR,
                EventSeverity.CRITICAL,
                "Multiple default users found; store is inconsistent",
                details={"count": len(defaults)},
            )
            raise InvalidOperationError(
                f"Multiple default users exist: {', '.join(str(u.id) for u in defaults)}"
            )

        if not defaults:
            default_user = User.create_default()
            await self.repository.add(default_user)
            logger.info("Created default user %s", default_user.id)
            log_security_event(
                EventType.DEFAULT_USER_CREATED,
                EventSeverity.INFO,
                "Default administrator created",
                details={"user_id": str(default_user.id)},
            )
            return

        default_user = defaults[0]
        if not default_user.has_role(Role.ADMIN):
            await self.repository.update(default_user.with_role(Role.ADMIN))
            log_security_event(
                EventType.DEFAULT_USER_REPAIRED,
                EventSeverity.INVESTIGATE,
                "Default user role restored to Admin",
                details={"user_id": str(default_user.id)},
            )

    # ── Lookups ──────────────────────────────────────────────────────

    async def get_users(self) -> List[User]:
        """All users as currently stored on disk."""
        return await self.repository.get_records()

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Exact, case-sensitive lookup in the cache."""
        for user in self.repository.cache:
            if user.username == username:
                return user
        return None

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        for user in self.repository.cache:
            if user.id == user_id:
                return user
        return None

    def get_user(self, user: User) -> Optional[User]:
        """The cached record with the same identity as ``user``."""
        return self.get_user_by_id(user.id)

    # ── Mutations ────────────────────────────────────────────────────

    async def add_user(self, username: str, password: SecretInput, role: Role = Role.USER) -> User:
        """
        Hash the password and store a new account.

        Raises:
            UserAlreadyExistsError: username already taken (checked before
                hashing)
        """
        try:
            if self.get_user_by_username(username) is not None:
                raise UserAlreadyExistsError(username)

            password_hash, salt = self.password_hasher.generate_hash(password)
        finally:
            zero_buffer(password)

        user = User.create(username, password_hash, salt, role=role)
        await self.repository.add(user)

        log_security_event(
            EventType.USER_CREATED,
            EventSeverity.INFO,
            "Account created",
            details={"username": username, "role": role.role_name},
        )
        return user

    async def update_user(self, user: User) -> None:
        """
        Replace the stored record with the same id.

        Raises:
            UserNotFoundError: no record with that id
            UserAlreadyExistsError: the new username belongs to another user
            DefaultUserProtectedError: the update would rename the default
                user, demote it, or move the default flag
        """
        current = self.get_user(user)
        if current is None:
            raise UserNotFoundError(user.username)

        if current.is_default or user.is_default:
            if not (current.is_default and user.is_default):
                raise DefaultUserProtectedError("The default flag cannot be moved to another user.")
            if user.username != DEFAULT_USERNAME:
                raise DefaultUserProtectedError("The default user cannot be renamed.")
            if not user.has_role(Role.ADMIN):
                raise DefaultUserProtectedError("The default user must keep the Admin role.")
        elif user.username == DEFAULT_USERNAME:
            raise DefaultUserProtectedError(f"The username '{DEFAULT_USERNAME}' is reserved.")

        holder = self.get_user_by_username(user.username)
        if holder is not None and holder != user:
            raise UserAlreadyExistsError(user.username)

        await self.repository.update(user)

        log_security_event(
            EventType.USER_UPDATED,
            EventSeverity.INFO,
            "Account updated",
            details={"user_id": str(user.id), "username": user.username},
        )

    async def set_role(self, username: str, role: Role) -> User:
        """Promote or demote a user by username."""
        user = self.get_user_by_username(username)
        if user is None:
            raise UserNotFoundError(username)

        updated = user.with_role(role)
        await self.update_user(updated)
        return updated

    async def remove_user(self, target: Union[User, str]) -> None:
        """
        Remove an account, given the User or its username.

        Raises:
            UserNotFoundError: no such user
            DefaultUserProtectedError: target is the default user
        """
        if isinstance(target, str):
            user = self.get_user_by_username(target)
            username = target
        else:
            user = self.get_user(target)
            username = target.username

        if user is None:
            raise UserNotFoundError(username)
        if user.is_default:
            raise DefaultUserProtectedError("The default user cannot be deleted.")

        await self.repository.remove(user)

        log_security_event(
            EventType.USER_REMOVED,
            EventSeverity.INFO,
            "Account removed",
            details={"user_id": str(user.id), "username": user.username},
        )

    async def reset_to_default(self) -> User:
        """
        Replace every account with a single, freshly generated default user.

        One write: on failure the previous accounts stay in place.
        """
        default_user = User.create_default()
        await self.repository.replace_all([default_user])

        log_security_event(
            EventType.STORE_RESET,
            EventSeverity.ALERT,
            "Store reset to the default administrator",
            details={"user_id": str(default_user.id)},
        )
        return default_user

    async def delete_repository(self) -> None:
        """Wipe the backing store and its key material."""
        await self.repository.delete_repository()
