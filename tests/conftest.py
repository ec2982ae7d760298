"""
Shared pytest fixtures for the Salter test suite.

Autouse fixtures below isolate tests from the live application data:
  - Audit logger   -> temp directory  (prevents test events in real audit logs)
  - SALTER_* vars  -> removed         (prevents a developer's settings leaking in)

Key material is file-backed under tmp_path so tests never touch the
process environment unless they ask for it.
"""

import os

import pytest

from salter.encryption.encryptor import Encryptor
from salter.encryption.key_manager import KeyManager, KeyManagerOptions
from salter.encryption.secret_source import SourceType
from salter.password_hasher import PasswordHasher
from salter.persistence.json_repository import JsonRepository
from salter.persistence.user_mapper import UserMapper
from salter.users.authentication import AuthenticationService
from salter.users.user_manager import UserManager

# Low iteration count keeps the suite fast; the algorithm is unchanged.
TEST_ITERATIONS = 1_000


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``log_security_event(...)`` writes into the real ``./audit_logs/``
    directory.
    """
    import salter.core.audit_log as audit_mod

    # Reset the singleton so the next call to get_audit_logger() creates
    # a fresh instance pointing at the temp directory.
    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, log_dir=None):
        orig_init(self, log_dir=log_dir or tmp_path / "audit_logs")

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_salter_env(monkeypatch):
    """Remove SALTER_* variables so configuration defaults are predictable."""
    for name in list(os.environ):
        if name.startswith("SALTER_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def hasher():
    return PasswordHasher(iterations=TEST_ITERATIONS)


@pytest.fixture
def key_manager(tmp_path):
    """KeyManager with key and IV stored as files under tmp_path."""
    options = KeyManagerOptions(
        source_type=SourceType.FILE,
        key_source=str(tmp_path / "keys" / "store.key"),
        iv_source=str(tmp_path / "keys" / "store.iv"),
    )
    return KeyManager(options)


@pytest.fixture
def encryptor(key_manager):
    return Encryptor(key_manager)


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "users.bin"


@pytest.fixture
def repository(store_path, encryptor):
    return JsonRepository(store_path, encryptor, UserMapper())


@pytest.fixture
def user_manager(repository, hasher):
    """Uninitialized UserManager; tests await ``initialize()`` themselves."""
    return UserManager(repository, hasher)


@pytest.fixture
def auth_service(user_manager, hasher):
    return AuthenticationService(user_manager, hasher)
