# Salter: Secret Sources
#
# Resolves raw secret bytes (a key or an IV) from an environment variable or
# a file, and persists new values back to the same place.
#
# Values are always exchanged as base64 text; raw bytes are never written
# verbatim to an environment variable or a secret file.
#
# Environment sources write two scopes:
#   - process scope: os.environ (inherited by child processes of this session)
#   - user scope:    a dotenv file (survives into later sessions)

import base64
import binascii
import logging
import os
import re
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

from dotenv import dotenv_values, set_key, unset_key

from ..exceptions import ConfigurationError, SecretLoadError, SecretSaveError

logger = logging.getLogger(__name__)

# Must start with a letter or underscore; letters, digits and underscores only.
ENVIRONMENT_VARIABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SourceType(str, Enum):
    """Where a secret lives."""
    ENVIRONMENT = "environment"
    FILE = "file"


def resolve_file_source(source: str) -> Path:
    """Turn an absolute path or a ``file://`` URI into a local Path."""
    parsed = urlparse(source)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(source)


def validate_source(source: str, source_type: SourceType, name: str = "source") -> None:
    """
    Check the syntax of a secret source identifier.

    Raises:
        ConfigurationError: empty identifier, bad environment variable name,
            or a file source that is not absolute.
    """
    if source is None or not source.strip():
        raise ConfigurationError(f"The {name} must not be empty.")

    if source_type is SourceType.ENVIRONMENT:
        if not ENVIRONMENT_VARIABLE_PATTERN.match(source):
            raise ConfigurationError(
                f"The {name} must start with a letter or underscore and contain "
                "only letters, numbers, and underscores."
            )
    elif source_type is SourceType.FILE:
        parsed = urlparse(source)
        if parsed.scheme == "file":
            if parsed.netloc not in ("", "localhost") or not parsed.path.startswith("/"):
                raise ConfigurationError(f"The {name} must be a valid file URI.")
        elif not Path(source).is_absolute():
            raise ConfigurationError(f"The {name} must be an absolute file path or file URI.")
    else:
        raise ConfigurationError(f"Unsupported source type: {source_type!r}")


def _decode(encoded: str, source: str) -> bytes:
    try:
        return base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SecretLoadError(f"The secret in '{source}' is not valid base64.") from exc


def _encode(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


class SecretSource(ABC):
    """Abstract base for a place that stores secret bytes."""

    source_type: SourceType

    def validate(self, source: str, name: str = "source") -> None:
        validate_source(source, self.source_type, name)

    @abstractmethod
    def load(self, source: str) -> bytes:
        """Return the decoded secret. Raises SecretLoadError."""

    @abstractmethod
    def save(self, source: str, data: bytes) -> None:
        """Base64-encode and persist the secret. Raises SecretSaveError."""

    @abstractmethod
    def delete(self, source: str) -> None:
        """Remove the secret if present."""


class EnvironmentSecretSource(SecretSource):
    """
    Secrets held in environment variables.

    Args:
        user_env_path: dotenv file used as the user scope. If None, only the
            process scope is used.
    """

    source_type = SourceType.ENVIRONMENT

    def __init__(self, user_env_path: Optional[Path] = None):
        self.user_env_path = Path(user_env_path) if user_env_path else None

    def _read_user_scope(self, source: str) -> Optional[str]:
        if self.user_env_path is None or not self.user_env_path.is_file():
            return None
        return dotenv_values(self.user_env_path).get(source)

    def load(self, source: str) -> bytes:
        try:
            encoded = os.environ.get(source) or self._read_user_scope(source)
        except OSError as exc:
            raise SecretLoadError(
                f"Failed to load from environment variable '{source}'."
            ) from exc

        if not encoded:
            raise SecretLoadError(f"Environment variable '{source}' not found.")

        return _decode(encoded, source)

    def save(self, source: str, data: bytes) -> None:
        encoded = _encode(data)
        try:
            os.environ[source] = encoded
            if self.user_env_path is not None:
                self.user_env_path.parent.mkdir(parents=True, exist_ok=True)
                self.user_env_path.touch(mode=0o600, exist_ok=True)
                set_key(str(self.user_env_path), source, encoded, quote_mode="always")
        except OSError as exc:
            raise SecretSaveError(
                f"Failed to save to environment variable '{source}'."
            ) from exc

    def delete(self, source: str) -> None:
        os.environ.pop(source, None)
        if self._read_user_scope(source) is not None:
            unset_key(str(self.user_env_path), source)
            logger.debug("Removed %s from user environment file", source)


class FileSecretSource(SecretSource):
    """Secrets held as base64 text in local files (mode 0600)."""

    source_type = SourceType.FILE

    def load(self, source: str) -> bytes:
        path = resolve_file_source(source)
        try:
            encoded = path.read_text(encoding="ascii")
        except (OSError, UnicodeDecodeError) as exc:
            raise SecretLoadError(f"Failed to load from file '{path}'.") from exc

        if not encoded.strip():
            raise SecretLoadError(f"The secret file '{path}' is empty.")

        return _decode(encoded, str(path))

    def save(self, source: str, data: bytes) -> None:
        path = resolve_file_source(source)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_encode(data), encoding="ascii")
            os.chmod(path, 0o600)
        except OSError as exc:
            raise SecretSaveError(f"Failed to save to file '{path}'.") from exc

    def delete(self, source: str) -> None:
        resolve_file_source(source).unlink(missing_ok=True)


def create_secret_source(
    source_type: SourceType,
    user_env_path: Optional[Path] = None,
) -> SecretSource:
    """Build the SecretSource for a source type."""
    if source_type is SourceType.ENVIRONMENT:
        return EnvironmentSecretSource(user_env_path=user_env_path)
    if source_type is SourceType.FILE:
        return FileSecretSource()
    raise ConfigurationError(f"Unsupported source type: {source_type!r}")
