# Salter: Symmetric Algorithms
#
# A SymmetricAlgorithm owns one key/IV pair for the duration of a single
# encrypt or decrypt call. The Encryptor creates a fresh instance per call
# through an algorithm factory (any zero-argument callable returning a
# SymmetricAlgorithm) and wipes it afterwards.
#
# AES-256-GCM is the default (authenticated encryption). AES-256-CBC with
# PKCS7 padding is available for stores written by the CBC strategy.

import os
from abc import ABC, abstractmethod
from typing import Callable

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.secure_memory import zero_buffer
from ..exceptions import ConfigurationError


class SymmetricAlgorithm(ABC):
    """Key/IV holder plus the cipher transform."""

    KEY_SIZE: int = 32
    IV_SIZE: int = 16

    def __init__(self):
        self.key = bytearray()
        self.iv = bytearray()

    def generate_key_and_iv(self) -> None:
        """Draw a fresh random key and IV."""
        self.key = bytearray(os.urandom(self.KEY_SIZE))
        self.iv = bytearray(os.urandom(self.IV_SIZE))

    def set_key_and_iv(self, key: bytearray, iv: bytearray) -> None:
        if len(key) != self.KEY_SIZE or len(iv) != self.IV_SIZE:
            raise ValueError("Key or IV has the wrong length for this algorithm.")
        self.key = key
        self.iv = iv

    def wipe(self) -> None:
        """Zero the in-memory key and IV."""
        zero_buffer(self.key)
        zero_buffer(self.iv)

    @abstractmethod
    def encrypt(self, data: bytes) -> bytes:
        """Encrypt with the current key and IV."""

    @abstractmethod
    def decrypt(self, data: bytes) -> bytes:
        """Decrypt with the current key and IV."""


class AesGcmAlgorithm(SymmetricAlgorithm):
    """AES-256-GCM. The IV is the 96-bit GCM nonce; the tag is appended to the ciphertext."""

    KEY_SIZE = 32   # 256 bits for AES-256
    IV_SIZE = 12    # 96-bit nonce for GCM (recommended)

    def encrypt(self, data: bytes) -> bytes:
        return AESGCM(bytes(self.key)).encrypt(bytes(self.iv), bytes(data), None)

    def decrypt(self, data: bytes) -> bytes:
        return AESGCM(bytes(self.key)).decrypt(bytes(self.iv), bytes(data), None)


class AesCbcAlgorithm(SymmetricAlgorithm):
    """AES-256-CBC with PKCS7 padding."""

    KEY_SIZE = 32
    IV_SIZE = 16    # one AES block
    BLOCK_SIZE_BITS = 128

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(bytes(self.key)), modes.CBC(bytes(self.iv)))

    def encrypt(self, data: bytes) -> bytes:
        padder = padding.PKCS7(self.BLOCK_SIZE_BITS).padder()
        padded = padder.update(bytes(data)) + padder.finalize()
        encryptor = self._cipher().encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, data: bytes) -> bytes:
        decryptor = self._cipher().decryptor()
        padded = decryptor.update(bytes(data)) + decryptor.finalize()
        unpadder = padding.PKCS7(self.BLOCK_SIZE_BITS).unpadder()
        return unpadder.update(padded) + unpadder.finalize()


AlgorithmFactory = Callable[[], SymmetricAlgorithm]

ALGORITHMS = {
    "aes-gcm": AesGcmAlgorithm,
    "aes-cbc": AesCbcAlgorithm,
}


def get_algorithm_factory(name: str) -> AlgorithmFactory:
    """Look up an algorithm factory by its configuration name."""
    try:
        return ALGORITHMS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown cipher '{name}'. Expected one of: {', '.join(sorted(ALGORITHMS))}"
        ) from None
