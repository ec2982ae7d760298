# Tests for AuthenticationService
# Covers: username/password policies, registration, authentication and
#         session handling, refresh, permissions, profile changes

import pytest

from salter.exceptions import (
    DefaultUserProtectedError,
    InvalidPasswordError,
    NoAuthenticatedUserError,
    PermissionDeniedError,
    UserAlreadyExistsError,
    UsernameError,
)
from salter.users.authentication import validate_password
from salter.users.role import Permission, Role
from salter.users.user import DEFAULT_USERNAME

USERNAME = "validUser1"
PASSWORD = "Str0ng!Pass"


# ── Policies ─────────────────────────────────────────────────────────


class TestUsernamePolicy:
    @pytest.mark.asyncio
    async def test_valid_username(self, auth_service, user_manager):
        await user_manager.initialize()
        auth_service.validate_username(USERNAME)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username, reason", [
        ("short1", "between 8 and 20"),
        ("a" * 21, "between 8 and 20"),
        ("bad user 1", "only letters, numbers, underscores, and dashes"),
        ("user.name1", "only letters, numbers, underscores, and dashes"),
        ("1username", "start with a letter"),
        ("_username", "start with a letter"),
    ])
    async def test_invalid_usernames(self, auth_service, user_manager, username, reason):
        await user_manager.initialize()
        with pytest.raises(UsernameError) as exc_info:
            auth_service.validate_username(username)
        assert reason in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_taken_username(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)

        with pytest.raises(UsernameError, match="Username already exists."):
            auth_service.validate_username(USERNAME)


class TestPasswordPolicy:
    @pytest.mark.parametrize("password", [PASSWORD, "aB3$aB3$", "pässW0rd!"])
    def test_valid_passwords(self, password):
        validate_password(password)

    def test_too_short(self):
        with pytest.raises(InvalidPasswordError, match="at least 8 characters"):
            validate_password("aB3$")

    @pytest.mark.parametrize("password", [
        "alllower1!",      # no uppercase
        "ALLUPPER1!",      # no lowercase
        "NoDigits!!",      # no digit
        "NoSpecial12",     # no special character
    ])
    def test_missing_character_class(self, password):
        with pytest.raises(InvalidPasswordError) as exc_info:
            validate_password(password)
        assert "uppercase" in exc_info.value.reason

    def test_accepts_bytes(self):
        validate_password(bytearray(PASSWORD.encode()))

    def test_service_exposes_policy(self, auth_service):
        with pytest.raises(InvalidPasswordError):
            auth_service.validate_password("weak")


# ── Registration and sessions ────────────────────────────────────────


class TestSession:
    @pytest.mark.asyncio
    async def test_register_then_authenticate(self, auth_service, user_manager):
        await user_manager.initialize()

        auth_service.validate_username(USERNAME)
        auth_service.validate_password(PASSWORD)
        user = await auth_service.register(USERNAME, PASSWORD)

        assert user.role is Role.USER
        assert await auth_service.authenticate(USERNAME, PASSWORD) is True
        assert auth_service.current_user.username == USERNAME
        assert auth_service.is_authenticated

    @pytest.mark.asyncio
    async def test_register_rejects_policy_violations(self, auth_service, user_manager):
        await user_manager.initialize()

        with pytest.raises(UsernameError):
            await auth_service.register("bad", PASSWORD)
        with pytest.raises(InvalidPasswordError):
            await auth_service.register(USERNAME, "weakpass")

        assert user_manager.get_user_by_username(USERNAME) is None

    @pytest.mark.asyncio
    async def test_register_duplicate(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)

        with pytest.raises((UsernameError, UserAlreadyExistsError)):
            await auth_service.register(USERNAME, PASSWORD)

    @pytest.mark.asyncio
    async def test_wrong_password_keeps_session(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert await auth_service.authenticate(USERNAME, "Wr0ng!Pass") is False
        assert auth_service.current_user.username == USERNAME

    @pytest.mark.asyncio
    async def test_unknown_user_is_plain_false(self, auth_service, user_manager):
        await user_manager.initialize()
        assert await auth_service.authenticate("ghostUser1", PASSWORD) is False
        assert auth_service.current_user is None

    @pytest.mark.asyncio
    async def test_empty_password_is_false(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        assert await auth_service.authenticate(USERNAME, "") is False

    @pytest.mark.asyncio
    async def test_password_buffer_zeroed(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        password = bytearray(PASSWORD.encode())

        assert await auth_service.authenticate(USERNAME, password) is True
        assert password == bytearray(len(PASSWORD))

    @pytest.mark.asyncio
    async def test_logout_then_reauthenticate_raises(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)
        assert await auth_service.authenticate_current_user(PASSWORD) is True

        auth_service.logout()

        assert auth_service.current_user is None
        with pytest.raises(NoAuthenticatedUserError):
            await auth_service.authenticate_current_user(PASSWORD)

    @pytest.mark.asyncio
    async def test_logout_without_session(self, auth_service):
        auth_service.logout()
        assert auth_service.current_user is None

    @pytest.mark.asyncio
    async def test_refresh_picks_up_changes(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        await user_manager.set_role(USERNAME, Role.ADMIN)
        refreshed = await auth_service.refresh_current_user()

        assert refreshed.role is Role.ADMIN
        assert auth_service.current_user.role is Role.ADMIN

    @pytest.mark.asyncio
    async def test_refresh_after_removal_clears_session(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)
        await user_manager.remove_user(USERNAME)

        with pytest.raises(NoAuthenticatedUserError):
            await auth_service.refresh_current_user()

        assert auth_service.current_user is None

    @pytest.mark.asyncio
    async def test_refresh_without_session(self, auth_service):
        with pytest.raises(NoAuthenticatedUserError):
            await auth_service.refresh_current_user()


# ── Permissions ──────────────────────────────────────────────────────


class TestPermissions:
    @pytest.mark.asyncio
    async def test_user_role_cannot_delete(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert auth_service.require_permission(Permission.WRITE).username == USERNAME
        with pytest.raises(PermissionDeniedError):
            auth_service.require_permission(Permission.DELETE)

    @pytest.mark.asyncio
    async def test_admin_has_delete(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await user_manager.set_role(USERNAME, Role.ADMIN)
        await auth_service.authenticate(USERNAME, PASSWORD)

        auth_service.require_permission(Permission.DELETE)

    def test_requires_session(self, auth_service):
        with pytest.raises(NoAuthenticatedUserError):
            auth_service.require_permission(Permission.READ)


# ── Profile changes ──────────────────────────────────────────────────


class TestProfile:
    @pytest.mark.asyncio
    async def test_change_username(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert await auth_service.change_username("renamedUser", PASSWORD) is True

        assert auth_service.current_user.username == "renamedUser"
        assert await auth_service.authenticate("renamedUser", PASSWORD) is True
        assert user_manager.get_user_by_username(USERNAME) is None

    @pytest.mark.asyncio
    async def test_change_username_wrong_password(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert await auth_service.change_username("renamedUser", "Wr0ng!Pass") is False
        assert user_manager.get_user_by_username(USERNAME) is not None

    @pytest.mark.asyncio
    async def test_change_username_policy(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        with pytest.raises(UsernameError):
            await auth_service.change_username("x", PASSWORD)

    @pytest.mark.asyncio
    async def test_change_password(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert await auth_service.change_password(PASSWORD, "N3w!Passw0rd") is True

        assert await auth_service.authenticate(USERNAME, PASSWORD) is False
        assert await auth_service.authenticate(USERNAME, "N3w!Passw0rd") is True

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert await auth_service.change_password("Wr0ng!Pass", "N3w!Passw0rd") is False
        assert await auth_service.authenticate(USERNAME, PASSWORD) is True

    @pytest.mark.asyncio
    async def test_change_password_policy(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        with pytest.raises(InvalidPasswordError):
            await auth_service.change_password(PASSWORD, "weak")

    @pytest.mark.asyncio
    async def test_delete_current_user(self, auth_service, user_manager):
        await user_manager.initialize()
        await auth_service.register(USERNAME, PASSWORD)
        await auth_service.authenticate(USERNAME, PASSWORD)

        assert await auth_service.delete_current_user(PASSWORD) is True

        assert auth_service.current_user is None
        assert user_manager.get_user_by_username(USERNAME) is None

    @pytest.mark.asyncio
    async def test_default_user_cannot_rename_or_delete_self(self, auth_service, user_manager, hasher):
        await user_manager.initialize()
        default = user_manager.get_user_by_username(DEFAULT_USERNAME)
        password_hash, salt = hasher.generate_hash(PASSWORD)
        await user_manager.update_user(default.with_credentials(password_hash, salt))
        assert await auth_service.authenticate(DEFAULT_USERNAME, PASSWORD) is True

        with pytest.raises(DefaultUserProtectedError):
            await auth_service.change_username("newAdmin1", PASSWORD)
        with pytest.raises(DefaultUserProtectedError):
            await auth_service.delete_current_user(PASSWORD)

    @pytest.mark.asyncio
    async def test_profile_changes_require_session(self, auth_service, user_manager):
        await user_manager.initialize()
        with pytest.raises(NoAuthenticatedUserError):
            await auth_service.change_password(PASSWORD, "N3w!Passw0rd")
