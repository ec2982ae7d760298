# Salter: Encryptor
#
# Symmetric encryption of byte buffers with a single active key/IV pair.
#
# Flow:
# 1. encrypt() draws a fresh key + IV, encrypts, and hands the pair to the
#    KeyManager, replacing whatever pair was stored before
# 2. decrypt() loads the current pair from the KeyManager and decrypts
# 3. Both directions wipe the algorithm's key/IV buffers before returning
#
# The store is fully rewritten on every mutation, so there is never a need
# to decrypt with an old key while encrypting with a new one.

import asyncio
import logging
from typing import Union

from ..core.secure_memory import zero_buffer
from ..exceptions import CryptoOperationError
from .algorithms import AesGcmAlgorithm, AlgorithmFactory
from .key_manager import KeyManager

logger = logging.getLogger(__name__)

ENCRYPTION_FAILED_MESSAGE = "Encryption failed."
DECRYPTION_FAILED_MESSAGE = "Decryption failed."


class Encryptor:
    """
    Encrypts and decrypts data with the key pair held by a KeyManager.

    Args:
        key_manager: Source of the active key/IV pair
        algorithm_factory: Zero-argument callable returning a fresh
            SymmetricAlgorithm (default: AES-256-GCM)
    """

    def __init__(self, key_manager: KeyManager, algorithm_factory: AlgorithmFactory = AesGcmAlgorithm):
        self.key_manager = key_manager
        self.algorithm_factory = algorithm_factory

    def encrypt(self, plaintext: Union[bytes, bytearray]) -> bytes:
        """
        Encrypt under a freshly generated key/IV pair and persist that pair.

        A bytearray plaintext is zeroed before returning, on success and
        failure alike.

        Raises:
            CryptoOperationError: on any failure (fixed message)
        """
        algorithm = self.algorithm_factory()
        try:
            algorithm.generate_key_and_iv()
            ciphertext = algorithm.encrypt(plaintext)
            self.key_manager.save(algorithm.key, algorithm.iv)
            return ciphertext
        except Exception as exc:
            logger.debug("Encryption failed: %s", type(exc).__name__)
            raise CryptoOperationError(ENCRYPTION_FAILED_MESSAGE) from exc
        finally:
            zero_buffer(plaintext)
            algorithm.wipe()

    def decrypt(self, ciphertext: bytes) -> bytes:
        """
        Decrypt with the currently stored key/IV pair.

        Raises:
            CryptoOperationError: on any failure, including missing key
                material (fixed message)
        """
        algorithm = self.algorithm_factory()
        key = iv = None
        try:
            key, iv = self.key_manager.load()
            algorithm.set_key_and_iv(key, iv)
            return algorithm.decrypt(ciphertext)
        except Exception as exc:
            logger.debug("Decryption failed: %s", type(exc).__name__)
            raise CryptoOperationError(DECRYPTION_FAILED_MESSAGE) from exc
        finally:
            zero_buffer(key)
            zero_buffer(iv)
            algorithm.wipe()

    async def encrypt_async(self, plaintext: Union[bytes, bytearray]) -> bytes:
        return await asyncio.to_thread(self.encrypt, plaintext)

    async def decrypt_async(self, ciphertext: bytes) -> bytes:
        return await asyncio.to_thread(self.decrypt, ciphertext)

    def snapshot_key(self):
        """The stored key/IV pair, or None if there is none yet."""
        return self.key_manager.load_if_present()

    def restore_key(self, snapshot) -> None:
        """Put back a pair returned by ``snapshot_key()``, then wipe it."""
        try:
            self.key_manager.restore(snapshot)
        finally:
            if snapshot is not None:
                zero_buffer(snapshot[0])
                zero_buffer(snapshot[1])

    def delete_key(self) -> None:
        """Remove the stored key material."""
        self.key_manager.delete()
