# Tests for the encrypted JSON repository
# Covers: store creation and reload, on-disk format, add/update/remove/clear,
#         cache rollback on failed writes, error classification, deletion

import base64
import json

import pytest

from salter.exceptions import RecordNotFoundError, RepositoryError, RepositoryErrorKind
from salter.persistence.json_repository import JsonRepository
from salter.persistence.user_mapper import UserMapper
from salter.users.user import User


def make_user(name="validUser1"):
    return User.create(name, "AB" * 64, "CD" * 64)


def failing_write(blob):
    raise PermissionError("read-only store")


# ── Lifecycle ────────────────────────────────────────────────────────


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_empty_encrypted_store(self, repository, store_path):
        await repository.initialize()

        assert repository.is_initialized
        assert store_path.exists()
        assert repository.cache == []
        # Not a readable JSON document on disk
        assert store_path.read_text() != "[]"
        base64.b64decode(store_path.read_text(), validate=True)

    @pytest.mark.asyncio
    async def test_plaintext_is_json_array_of_dtos(self, repository, store_path, encryptor):
        await repository.initialize()
        user = make_user()
        await repository.add(user)

        plaintext = encryptor.decrypt(base64.b64decode(store_path.read_text()))
        records = json.loads(plaintext)

        assert records == [{
            "Id": str(user.id),
            "Username": "validUser1",
            "PasswordHash": user.password_hash,
            "Salt": user.salt,
            "IsDefault": False,
            "RoleName": "User",
        }]

    @pytest.mark.asyncio
    async def test_reload_from_existing_store(self, repository, store_path, encryptor):
        await repository.initialize()
        user = make_user()
        await repository.add(user)

        reopened = JsonRepository(store_path, encryptor, UserMapper())
        await reopened.initialize()

        assert reopened.cache == [user]
        assert reopened.cache[0].username == "validUser1"

    @pytest.mark.asyncio
    async def test_corrupt_store_is_malformed_data(self, repository, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("%%% not base64 %%%")

        with pytest.raises(RepositoryError) as exc_info:
            await repository.initialize()

        assert exc_info.value.kind is RepositoryErrorKind.MALFORMED_DATA
        assert str(exc_info.value).startswith("Error while attempting to get records:")

    @pytest.mark.asyncio
    async def test_missing_key_material_is_crypto_error(self, repository, store_path, key_manager):
        await repository.initialize()
        key_manager.delete()

        with pytest.raises(RepositoryError) as exc_info:
            await repository.get_records()

        assert exc_info.value.kind is RepositoryErrorKind.CRYPTO

    @pytest.mark.asyncio
    async def test_invalid_record_fails_whole_load(self, repository, store_path, encryptor):
        await repository.initialize()
        bad = [{"Id": "nope", "Username": "", "PasswordHash": "", "Salt": "", "IsDefault": False, "RoleName": "User"}]
        ciphertext = encryptor.encrypt(bytearray(json.dumps(bad).encode()))
        store_path.write_text(base64.b64encode(ciphertext).decode())

        with pytest.raises(RepositoryError) as exc_info:
            await repository.get_records()

        assert exc_info.value.kind is RepositoryErrorKind.MALFORMED_DATA
        assert "Username is required." in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_array_payload_rejected(self, repository, store_path, encryptor):
        await repository.initialize()
        ciphertext = encryptor.encrypt(bytearray(b'{"Id": "x"}'))
        store_path.write_text(base64.b64encode(ciphertext).decode())

        with pytest.raises(RepositoryError) as exc_info:
            await repository.get_records()

        assert exc_info.value.kind is RepositoryErrorKind.MALFORMED_DATA


# ── Mutations ────────────────────────────────────────────────────────


class TestMutations:
    @pytest.mark.asyncio
    async def test_add_persists(self, repository):
        await repository.initialize()
        user = make_user()

        await repository.add(user)

        assert repository.cache == [user]
        assert await repository.get_records() == [user]

    @pytest.mark.asyncio
    async def test_update_replaces_by_id(self, repository):
        await repository.initialize()
        user = make_user()
        await repository.add(user)

        await repository.update(user.with_username("renamedUser"))

        stored = await repository.get_records()
        assert stored[0].username == "renamedUser"
        assert repository.cache[0].username == "renamedUser"

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, repository):
        await repository.initialize()

        with pytest.raises(RecordNotFoundError) as exc_info:
            await repository.update(make_user())

        assert exc_info.value.operation == "update record"

    @pytest.mark.asyncio
    async def test_remove_by_id_and_by_record(self, repository):
        await repository.initialize()
        first, second = make_user("firstUser1"), make_user("secondUser1")
        await repository.add(first)
        await repository.add(second)

        await repository.remove(first.id)
        await repository.remove(second)

        assert repository.cache == []
        assert await repository.get_records() == []

    @pytest.mark.asyncio
    async def test_remove_unknown_record(self, repository):
        await repository.initialize()
        with pytest.raises(RecordNotFoundError):
            await repository.remove(make_user())

    @pytest.mark.asyncio
    async def test_clear_all(self, repository):
        await repository.initialize()
        await repository.add(make_user("firstUser1"))
        await repository.add(make_user("secondUser1"))

        await repository.clear_all()

        assert await repository.get_records() == []


# ── Rollback ─────────────────────────────────────────────────────────


class TestRollback:
    @pytest.mark.asyncio
    async def test_failed_add_rolls_back(self, repository, monkeypatch):
        await repository.initialize()
        monkeypatch.setattr(repository, "_write_blob", failing_write)

        with pytest.raises(RepositoryError) as exc_info:
            await repository.add(make_user())

        assert repository.cache == []
        assert exc_info.value.kind is RepositoryErrorKind.ACCESS_DENIED
        assert exc_info.value.operation == "add record"
        assert str(exc_info.value).startswith("Error while attempting to add record:")

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back(self, repository, monkeypatch):
        await repository.initialize()
        user = make_user()
        await repository.add(user)
        monkeypatch.setattr(repository, "_write_blob", failing_write)

        with pytest.raises(RepositoryError):
            await repository.update(user.with_username("renamedUser"))

        assert repository.cache[0].username == "validUser1"

    @pytest.mark.asyncio
    async def test_failed_remove_restores_position(self, repository, monkeypatch):
        await repository.initialize()
        users = [make_user("firstUser1"), make_user("secondUser1"), make_user("thirdUser1")]
        for user in users:
            await repository.add(user)
        monkeypatch.setattr(repository, "_write_blob", failing_write)

        with pytest.raises(RepositoryError):
            await repository.remove(users[1])

        assert [u.username for u in repository.cache] == ["firstUser1", "secondUser1", "thirdUser1"]

    @pytest.mark.asyncio
    async def test_failed_clear_restores_all(self, repository, monkeypatch):
        await repository.initialize()
        await repository.add(make_user("firstUser1"))
        await repository.add(make_user("secondUser1"))
        monkeypatch.setattr(repository, "_write_blob", failing_write)

        with pytest.raises(RepositoryError) as exc_info:
            await repository.clear_all()

        assert len(repository.cache) == 2
        assert exc_info.value.operation == "clear all records"

    @pytest.mark.asyncio
    async def test_failed_write_leaves_store_readable(self, repository, key_manager):
        await repository.initialize()
        user = make_user()
        await repository.add(user)
        key_before, iv_before = key_manager.load()
        repository._write_blob = failing_write

        with pytest.raises(RepositoryError):
            await repository.remove(user)

        del repository._write_blob
        key_after, iv_after = key_manager.load()
        assert (key_after, iv_after) == (key_before, iv_before)
        assert await repository.get_records() == repository.cache == [user]

    @pytest.mark.asyncio
    async def test_failed_first_write_leaves_no_key(self, repository, key_manager):
        repository._write_blob = failing_write

        with pytest.raises(RepositoryError):
            await repository.initialize()

        assert key_manager.load_if_present() is None

    @pytest.mark.asyncio
    async def test_replace_all(self, repository):
        await repository.initialize()
        await repository.add(make_user("firstUser1"))
        replacement = make_user("secondUser1")

        await repository.replace_all([replacement])

        assert await repository.get_records() == [replacement]

    @pytest.mark.asyncio
    async def test_encryption_failure_is_crypto_kind(self, repository, monkeypatch):
        await repository.initialize()

        def failing_save(key, iv):
            raise OSError("no space left")

        monkeypatch.setattr(repository.encryptor.key_manager, "save", failing_save)

        with pytest.raises(RepositoryError) as exc_info:
            await repository.add(make_user())

        assert exc_info.value.kind is RepositoryErrorKind.CRYPTO
        assert repository.cache == []


# ── Deletion ─────────────────────────────────────────────────────────


class TestDeleteRepository:
    @pytest.mark.asyncio
    async def test_removes_file_and_keys(self, repository, store_path, tmp_path):
        await repository.initialize()

        await repository.delete_repository()

        assert not store_path.exists()
        assert not (tmp_path / "keys" / "store.key").exists()
        assert not repository.is_initialized

    @pytest.mark.asyncio
    async def test_reinitialize_after_delete(self, repository):
        await repository.initialize()
        await repository.add(make_user())
        await repository.delete_repository()

        await repository.initialize()

        assert repository.cache == []
