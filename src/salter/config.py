# Salter: Configuration
#
# Settings come from the process environment, optionally seeded from a
# .env file (python-dotenv). Every setting has a default, so an empty
# environment yields a working per-user installation.
#
#   SALTER_DATA_DIR         application directory
#   SALTER_STORE_FILE       encrypted user store (default <data_dir>/users.bin)
#   SALTER_SECRET_SOURCE    "environment" | "file"
#   SALTER_KEY_SOURCE       env var name or absolute path of the key
#   SALTER_IV_SOURCE        env var name or absolute path of the IV
#   SALTER_USER_ENV_FILE    user-scoped dotenv file for environment secrets
#   SALTER_CIPHER           "aes-gcm" | "aes-cbc"
#   SALTER_HASH_ITERATIONS  PBKDF2 iterations
#   SALTER_LOG_DIR          audit log directory

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .encryption.algorithms import ALGORITHMS
from .encryption.secret_source import SourceType
from .exceptions import ConfigurationError
from .password_hasher import PasswordHasher

APPLICATION_NAME = "Salter"
USER_STORE_FILE_NAME = "users.bin"
USER_ENV_FILE_NAME = "secrets.env"
KEY_ENVIRONMENT_VARIABLE = "SALTER_KEY"
IV_ENVIRONMENT_VARIABLE = "SALTER_IV"


def default_data_dir(environ: Mapping[str, str]) -> Path:
    base = environ.get("APPDATA") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / APPLICATION_NAME


@dataclass
class SalterConfig:
    """Resolved application settings."""
    data_dir: Path
    store_path: Path
    secret_source_type: SourceType = SourceType.ENVIRONMENT
    key_source: str = KEY_ENVIRONMENT_VARIABLE
    iv_source: str = IV_ENVIRONMENT_VARIABLE
    user_env_path: Optional[Path] = None
    cipher: str = "aes-gcm"
    hash_iterations: int = PasswordHasher.ITERATIONS
    log_dir: Optional[Path] = None

    def __post_init__(self):
        if self.cipher.lower() not in ALGORITHMS:
            raise ConfigurationError(
                f"SALTER_CIPHER must be one of: {', '.join(sorted(ALGORITHMS))}"
            )
        if self.hash_iterations <= 0:
            raise ConfigurationError("SALTER_HASH_ITERATIONS must be a positive integer.")


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> SalterConfig:
    """
    Build the configuration.

    Args:
        environ: Mapping to read settings from (default: os.environ after
            loading a .env file)
        dotenv_path: Explicit .env file to load; ignored when ``environ``
            is given

    Raises:
        ConfigurationError: a setting has an invalid value
    """
    if environ is None:
        load_dotenv(dotenv_path=dotenv_path, override=False)
        environ = os.environ

    data_dir = Path(environ.get("SALTER_DATA_DIR") or default_data_dir(environ))

    source_name = environ.get("SALTER_SECRET_SOURCE", SourceType.ENVIRONMENT.value).strip().lower()
    try:
        source_type = SourceType(source_name)
    except ValueError:
        raise ConfigurationError(
            f"SALTER_SECRET_SOURCE must be 'environment' or 'file', got {source_name!r}"
        ) from None

    if source_type is SourceType.FILE:
        default_key_source = str(data_dir / "keys" / "store.key")
        default_iv_source = str(data_dir / "keys" / "store.iv")
    else:
        default_key_source = KEY_ENVIRONMENT_VARIABLE
        default_iv_source = IV_ENVIRONMENT_VARIABLE

    iterations_raw = environ.get("SALTER_HASH_ITERATIONS", str(PasswordHasher.ITERATIONS))
    try:
        hash_iterations = int(iterations_raw)
    except ValueError:
        raise ConfigurationError(
            f"SALTER_HASH_ITERATIONS must be an integer, got {iterations_raw!r}"
        ) from None

    return SalterConfig(
        data_dir=data_dir,
        store_path=Path(environ.get("SALTER_STORE_FILE") or data_dir / USER_STORE_FILE_NAME),
        secret_source_type=source_type,
        key_source=environ.get("SALTER_KEY_SOURCE") or default_key_source,
        iv_source=environ.get("SALTER_IV_SOURCE") or default_iv_source,
        user_env_path=Path(environ.get("SALTER_USER_ENV_FILE") or data_dir / USER_ENV_FILE_NAME),
        cipher=environ.get("SALTER_CIPHER", "aes-gcm"),
        hash_iterations=hash_iterations,
        log_dir=Path(environ.get("SALTER_LOG_DIR") or data_dir / "audit_logs"),
    )
