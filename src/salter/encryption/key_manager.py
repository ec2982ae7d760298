# Salter: Key Manager
#
# Manages the single active (key, IV) pair used by the Encryptor.
# Both halves live in the same kind of SecretSource; loads and saves
# succeed or fail as a unit.

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from ..core.secure_memory import zero_buffer
from ..exceptions import SecretLoadError, SecretSaveError
from .secret_source import SecretSource, SourceType, create_secret_source

logger = logging.getLogger(__name__)


@dataclass
class KeyManagerOptions:
    """
    Where the key and IV are stored.

    For SourceType.ENVIRONMENT the sources are environment variable names,
    for SourceType.FILE they are absolute paths or file:// URIs.
    """
    source_type: SourceType
    key_source: str
    iv_source: str


class KeyManager:
    """Loads, saves and deletes the (key, IV) pair."""

    def __init__(
        self,
        options: KeyManagerOptions,
        user_env_path: Optional[Path] = None,
        secret_source: Optional[SecretSource] = None,
    ):
        self.options = options
        self._source = secret_source or create_secret_source(
            options.source_type, user_env_path=user_env_path
        )
        self._source.validate(options.key_source, "key source")
        self._source.validate(options.iv_source, "initialization vector source")

    def load(self) -> Tuple[bytearray, bytearray]:
        """
        Load the current key and IV.

        Raises:
            SecretLoadError: if either half is missing or unreadable.
        """
        key = bytearray(self._source.load(self.options.key_source))
        try:
            iv = bytearray(self._source.load(self.options.iv_source))
        except SecretLoadError:
            zero_buffer(key)
            raise
        return key, iv

    def _load_optional(self, source: str) -> Optional[bytearray]:
        try:
            return bytearray(self._source.load(source))
        except SecretLoadError:
            return None

    def load_if_present(self) -> Optional[Tuple[bytearray, bytearray]]:
        """The current pair, or None if either half is missing or unreadable."""
        try:
            return self.load()
        except SecretLoadError:
            return None

    def save(self, key: bytes, iv: bytes) -> None:
        """
        Persist a new key and IV, replacing the previous pair.

        Both halves change or neither does: if the IV cannot be written,
        the previous key is put back (or removed, if there was none)
        before the error is raised.
        """
        previous_key = self._load_optional(self.options.key_source)
        try:
            self._source.save(self.options.key_source, key)
            try:
                self._source.save(self.options.iv_source, iv)
            except SecretSaveError:
                self._restore_key(previous_key)
                raise
        finally:
            zero_buffer(previous_key)

    def _restore_key(self, previous_key: Optional[bytearray]) -> None:
        try:
            if previous_key is None:
                self._source.delete(self.options.key_source)
            else:
                self._source.save(self.options.key_source, previous_key)
        except (SecretSaveError, OSError):
            logger.error("IV save failed and the previous key could not be restored")

    def restore(self, previous: Optional[Tuple[bytearray, bytearray]]) -> None:
        """Put back a pair taken with ``load_if_present()``; None removes the current pair."""
        if previous is None:
            self.delete()
        else:
            self.save(*previous)

    def delete(self) -> None:
        """Remove both halves from their source."""
        self._source.delete(self.options.key_source)
        self._source.delete(self.options.iv_source)

    async def load_async(self) -> Tuple[bytearray, bytearray]:
        return await asyncio.to_thread(self.load)

    async def save_async(self, key: bytes, iv: bytes) -> None:
        await asyncio.to_thread(self.save, key, iv)
