# Salter: Encrypted JSON Repository
#
# Stores the whole collection in one file:
#     base64( encrypt( utf8( JSON array of DTOs ) ) )
#
# Every mutation follows the same sequence:
#     mutate cache -> serialize -> encrypt -> overwrite file
# and undoes the cache mutation if any later step fails, so the cache never
# reflects an unpersisted change. A failed write also puts the previous
# key/IV back, so the file on disk stays readable. Writes are plain
# overwrites; the file is only as atomic as the underlying filesystem
# makes it.

import asyncio
import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Callable, Generic, List, TypeVar, Union
from uuid import UUID

from ..core.audit_log import EventSeverity, EventType, log_security_event
from ..core.secure_memory import zero_buffer
from ..encryption.encryptor import Encryptor
from ..exceptions import (
    CryptoOperationError,
    RecordNotFoundError,
    RepositoryError,
    RepositoryErrorKind,
    SalterError,
    ValidationError,
)
from .dto import DataTransferObject
from .mapper import Mapper
from .repository import Repository, T

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=DataTransferObject)

EMPTY_JSON_ARRAY = "[]"
ERROR_MESSAGE_PREFIX = "Error while attempting to"


class JsonRepository(Repository[T], Generic[T, D]):
    """
    Repository persisted as a single encrypted JSON file.

    Args:
        location: Path of the backing file (parent directories are created)
        encryptor: Encryptor used for the whole blob
        mapper: Mapper between entities and their DTOs
    """

    def __init__(self, location: Path, encryptor: Encryptor, mapper: Mapper[T, D]):
        super().__init__(location, encryptor)
        self.mapper = mapper

    # ── Blocking I/O ─────────────────────────────────────────────────

    def _read_blob(self) -> str:
        return self.location.read_text(encoding="utf-8")

    def _write_blob(self, blob: str) -> None:
        self.location.write_text(blob, encoding="utf-8")

    def _serialize(self, records: List[T]) -> str:
        dtos = self.mapper.to_dtos(records)
        payload = bytearray(json.dumps([dto.to_dict() for dto in dtos]).encode("utf-8"))
        # encrypt() zeroes the payload buffer
        ciphertext = self.encryptor.encrypt(payload)
        return base64.b64encode(ciphertext).decode("ascii")

    def _deserialize(self, blob: str) -> List[T]:
        ciphertext = base64.b64decode(blob.strip(), validate=True)
        plaintext = self.encryptor.decrypt(ciphertext)
        data = json.loads(plaintext.decode("utf-8"))
        if not isinstance(data, list):
            raise ValidationError("The store must contain a JSON array of records.")
        dtos = [self.mapper.dto_from_dict(item) for item in data]
        return self.mapper.to_models(dtos)

    def _write_records(self, records: List[T]) -> None:
        # Encrypting replaces the stored key; the old pair goes back if the
        # file keeps its old contents.
        snapshot = self.encryptor.snapshot_key()
        try:
            blob = self._serialize(records)
            self._write_blob(blob)
        except Exception:
            self._restore_key(snapshot)
            raise
        if snapshot is not None:
            zero_buffer(snapshot[0])
            zero_buffer(snapshot[1])

    def _restore_key(self, snapshot) -> None:
        try:
            self.encryptor.restore_key(snapshot)
        except (SalterError, OSError):
            logger.error("Store write failed and the previous key could not be restored")

    def _read_records(self) -> List[T]:
        try:
            return self._deserialize(self._read_blob())
        except Exception as exc:
            raise self._to_repository_error(exc, "get records") from exc

    # ── Error classification ─────────────────────────────────────────

    def _to_repository_error(self, exc: Exception, operation: str) -> RepositoryError:
        path = self.location
        if isinstance(exc, CryptoOperationError):
            kind = RepositoryErrorKind.CRYPTO
            detail = "An error occurred while encrypting or decrypting the data."
        elif isinstance(exc, ValidationError):
            kind = RepositoryErrorKind.MALFORMED_DATA
            detail = f"The stored records are invalid. {exc}"
        elif isinstance(exc, json.JSONDecodeError):
            kind = RepositoryErrorKind.MALFORMED_DATA
            detail = "An error occurred while serializing or deserializing the data."
        elif isinstance(exc, (binascii.Error, UnicodeDecodeError)):
            kind = RepositoryErrorKind.MALFORMED_DATA
            detail = "The data is in an invalid format."
        elif isinstance(exc, FileNotFoundError):
            kind = RepositoryErrorKind.FILE_NOT_FOUND
            detail = f"The file at {path} was not found."
        elif isinstance(exc, PermissionError):
            kind = RepositoryErrorKind.ACCESS_DENIED
            detail = f"Access to the file at {path} is denied."
        elif isinstance(exc, OSError):
            kind = RepositoryErrorKind.IO
            detail = f"An I/O error occurred while accessing the file at {path}."
        else:
            kind = RepositoryErrorKind.UNKNOWN
            detail = "An unexpected error occurred."

        return RepositoryError(f"{ERROR_MESSAGE_PREFIX} {operation}: {detail}", operation=operation, kind=kind)

    # ── Commit helper ────────────────────────────────────────────────

    async def _commit(self, operation: str, apply: Callable[[], None], revert: Callable[[], None]) -> None:
        """Apply a cache change, persist the whole cache, undo the change on failure."""
        apply()
        snapshot = list(self.cache)
        try:
            await asyncio.to_thread(self._write_records, snapshot)
        except Exception as exc:
            revert()
            error = self._to_repository_error(exc, operation)
            logger.error("%s (cache rolled back)", error)
            log_security_event(
                EventType.STORE_ERROR,
                EventSeverity.ALERT,
                f"Store write failed during '{operation}'",
                details={"kind": error.kind.value, "path": str(self.location)},
            )
            raise error from exc

    def _index_of(self, record_id: UUID, operation: str) -> int:
        for index, record in enumerate(self.cache):
            if record.id == record_id:
                return index
        raise RecordNotFoundError(operation=operation)

    # ── Repository API ───────────────────────────────────────────────

    async def initialize(self) -> None:
        def create_if_absent() -> bool:
            self.location.parent.mkdir(parents=True, exist_ok=True)
            if self.location.exists():
                return False
            self._write_records([])
            return True

        try:
            created = await asyncio.to_thread(create_if_absent)
        except Exception as exc:
            raise self._to_repository_error(exc, "initialize repository") from exc

        if created:
            self._cache = []
            log_security_event(
                EventType.STORE_CREATED,
                EventSeverity.INFO,
                "Encrypted store created",
                details={"path": str(self.location)},
            )
        else:
            await self.refresh_cache()
            log_security_event(
                EventType.STORE_LOADED,
                EventSeverity.INFO,
                "Encrypted store loaded",
                details={"path": str(self.location), "records": len(self._cache)},
            )

        self._initialized = True

    async def get_records(self) -> List[T]:
        return await asyncio.to_thread(self._read_records)

    async def add(self, record: T) -> None:
        cache = self.cache
        index = len(cache)

        def apply():
            cache.insert(index, record)

        def revert():
            del cache[index]

        await self._commit("add record", apply, revert)

    async def update(self, record: T) -> None:
        cache = self.cache
        index = self._index_of(record.id, "update record")
        previous = cache[index]

        def apply():
            cache[index] = record

        def revert():
            cache[index] = previous

        await self._commit("update record", apply, revert)

    async def remove(self, target: Union[UUID, T]) -> None:
        record_id = target if isinstance(target, UUID) else target.id
        cache = self.cache
        index = self._index_of(record_id, "remove record")
        previous = cache[index]

        def apply():
            del cache[index]

        def revert():
            cache.insert(index, previous)

        await self._commit("remove record", apply, revert)

    async def clear_all(self) -> None:
        cache = self.cache
        previous = list(cache)

        def apply():
            cache.clear()

        def revert():
            cache[:] = previous

        await self._commit("clear all records", apply, revert)

    async def replace_all(self, records: List[T]) -> None:
        cache = self.cache
        previous = list(cache)

        def apply():
            cache[:] = records

        def revert():
            cache[:] = previous

        await self._commit("replace all records", apply, revert)

    async def delete_repository(self) -> None:
        def delete():
            self.location.unlink(missing_ok=True)
            self.encryptor.delete_key()

        try:
            await asyncio.to_thread(delete)
        except Exception as exc:
            raise self._to_repository_error(exc, "delete repository") from exc

        self._cache = None
        self._initialized = False
        log_security_event(
            EventType.STORE_DELETED,
            EventSeverity.ALERT,
            "Encrypted store and key material deleted",
            details={"path": str(self.location)},
        )
