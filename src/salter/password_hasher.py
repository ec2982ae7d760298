# Salter: Password Hashing
#
# Salted PBKDF2 password hashes (SHA-512, 350k iterations by default).
# Hash and salt are exchanged as uppercase hex strings.
# Password buffers are zeroed directly after derivation on every path.

import hmac
import os
import re
from typing import Optional, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .core.secure_memory import SecretInput, is_empty_secret, to_secret_buffer, zero_buffer

# Stored hashes and salts are canonical uppercase hex.
HEX_PATTERN = re.compile(r"(?:[0-9A-F]{2})+")


class PasswordHasher:
    """
    Derives and verifies salted password hashes.

    Args:
        key_size: Salt and hash length in bytes (default 64)
        iterations: PBKDF2 iteration count (default 350,000)
        hash_algorithm: PRF hash (default SHA-512)
    """

    KEY_SIZE = 64
    ITERATIONS = 350_000

    def __init__(
        self,
        key_size: int = KEY_SIZE,
        iterations: int = ITERATIONS,
        hash_algorithm: Optional[hashes.HashAlgorithm] = None,
    ):
        if key_size <= 0 or iterations <= 0:
            raise ValueError("key_size and iterations must be positive.")
        self.key_size = key_size
        self.iterations = iterations
        self.hash_algorithm = hash_algorithm or hashes.SHA512()

    def _derive(self, password: bytearray, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=self.hash_algorithm,
            length=self.key_size,
            salt=salt,
            iterations=self.iterations,
        )
        return kdf.derive(password)

    def generate_hash(self, password: SecretInput) -> Tuple[str, str]:
        """
        Hash a password under a fresh random salt.

        Returns:
            (hash, salt) as uppercase hex strings

        Raises:
            ValueError: empty password
        """
        if is_empty_secret(password):
            raise ValueError("Password cannot be empty.")

        buffer = to_secret_buffer(password)
        try:
            salt = os.urandom(self.key_size)
            digest = self._derive(buffer, salt)
        finally:
            zero_buffer(buffer)
            zero_buffer(password)

        return digest.hex().upper(), salt.hex().upper()

    def validate(self, password: SecretInput, password_hash: str, salt: str) -> bool:
        """
        Check a password against a stored hash and salt in constant time.

        Anything other than canonical uppercase hex in the stored hash or
        salt is a mismatch, not an error.

        Raises:
            ValueError: empty password, hash or salt
        """
        if is_empty_secret(password):
            raise ValueError("Password cannot be empty.")
        if not password_hash or not password_hash.strip():
            raise ValueError("Hash cannot be empty.")
        if not salt or not salt.strip():
            raise ValueError("Salt cannot be empty.")

        buffer = to_secret_buffer(password)
        try:
            if not (HEX_PATTERN.fullmatch(salt) and HEX_PATTERN.fullmatch(password_hash)):
                return False
            salt_bytes = bytes.fromhex(salt)
            expected = bytes.fromhex(password_hash)
            candidate = self._derive(buffer, salt_bytes)
        finally:
            zero_buffer(buffer)
            zero_buffer(password)

        return hmac.compare_digest(candidate, expected)
