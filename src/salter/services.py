# Salter: Service Wiring
#
# KeyManager -> Encryptor -> JsonRepository -> UserManager -> AuthenticationService

from dataclasses import dataclass

from .config import SalterConfig
from .core.audit_log import configure_audit_logger
from .encryption.algorithms import get_algorithm_factory
from .encryption.encryptor import Encryptor
from .encryption.key_manager import KeyManager, KeyManagerOptions
from .password_hasher import PasswordHasher
from .persistence.json_repository import JsonRepository
from .persistence.user_mapper import UserMapper
from .users.authentication import AuthenticationService
from .users.user_manager import UserManager


@dataclass
class Services:
    user_manager: UserManager
    auth_service: AuthenticationService
    password_hasher: PasswordHasher


def build_services(config: SalterConfig) -> Services:
    """
    Wire the core components from a configuration. Nothing touches disk
    until ``user_manager.initialize()`` is awaited.

    Raises:
        ConfigurationError: invalid key/IV source identifiers or cipher
    """
    if config.log_dir is not None:
        configure_audit_logger(config.log_dir)

    key_manager = KeyManager(
        KeyManagerOptions(
            source_type=config.secret_source_type,
            key_source=config.key_source,
            iv_source=config.iv_source,
        ),
        user_env_path=config.user_env_path,
    )
    encryptor = Encryptor(key_manager, get_algorithm_factory(config.cipher))
    repository = JsonRepository(config.store_path, encryptor, UserMapper())
    password_hasher = PasswordHasher(iterations=config.hash_iterations)
    user_manager = UserManager(repository, password_hasher)

    return Services(
        user_manager=user_manager,
        auth_service=AuthenticationService(user_manager, password_hasher),
        password_hasher=password_hasher,
    )
