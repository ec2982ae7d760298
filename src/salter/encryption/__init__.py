# Salter: Encryption Module
#
# Key material sourcing (environment variables or files), the key/IV
# manager, and the symmetric Encryptor used by the persistence layer.

from .algorithms import (
    AesCbcAlgorithm,
    AesGcmAlgorithm,
    SymmetricAlgorithm,
    get_algorithm_factory,
)
from .encryptor import Encryptor
from .key_manager import KeyManager, KeyManagerOptions
from .secret_source import (
    EnvironmentSecretSource,
    FileSecretSource,
    SecretSource,
    SourceType,
    create_secret_source,
    validate_source,
)

__all__ = [
    "AesCbcAlgorithm",
    "AesGcmAlgorithm",
    "SymmetricAlgorithm",
    "get_algorithm_factory",
    "Encryptor",
    "KeyManager",
    "KeyManagerOptions",
    "EnvironmentSecretSource",
    "FileSecretSource",
    "SecretSource",
    "SourceType",
    "create_secret_source",
    "validate_source",
]
