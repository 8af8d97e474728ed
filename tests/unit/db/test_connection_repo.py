"""Tests for ConnectionRepo — credentials, status and cursor bookkeeping."""

import pytest

from ledgersync.db.repos.connection_repo import ConnectionRepo
from ledgersync.db.repos.file_import_repo import FileImportRepo
from ledgersync.domain.enums import SyncStatus
from ledgersync.infra.cex.crypto import CredentialCipher


@pytest.fixture()
def repo(session):
    return ConnectionRepo(session, CredentialCipher("test-key"))


class TestConnectionRepo:
    async def test_create_encrypts_credentials(self, repo):
        connection = await repo.create("binance", "key", "secret", label="Main")

        assert connection.api_key_encrypted != "key"
        assert repo.credentials(connection) == ("key", "secret")
        assert connection.sync_status == SyncStatus.IDLE.value
        assert connection.cursor is None

    async def test_get_by_id_and_platform(self, repo):
        connection = await repo.create("binance", "key", "secret")

        assert await repo.get_by_id(connection.id) is connection
        assert await repo.get_all("binance") == [connection]
        assert await repo.get_all("kraken") == []

    async def test_cursor_never_moves_backwards(self, repo):
        connection = await repo.create("binance", "key", "secret")

        await repo.advance_cursor(connection, 2000)
        await repo.advance_cursor(connection, 1000)

        assert connection.cursor == 2000
        assert connection.last_synced_at is not None

    async def test_set_status_with_error(self, repo):
        connection = await repo.create("binance", "key", "secret")

        await repo.set_status(connection, SyncStatus.ERROR, "boom")

        assert connection.sync_status == "ERROR"
        assert connection.last_error == "boom"

    async def test_plaintext_without_cipher(self, session):
        repo = ConnectionRepo(session)

        connection = await repo.create("binance", "key", "secret")

        assert repo.credentials(connection) == ("key", "secret")


class TestFileImportRepo:
    async def test_complete(self, session):
        repo = FileImportRepo(session)
        file_import = await repo.create("history.csv", 120)

        await repo.complete(file_import, {"parser_id": "binance-spot-history", "rows": 2})

        stored = await repo.get_by_id(file_import.id)
        assert stored.status == SyncStatus.SYNCED.value
        assert stored.parser_id == "binance-spot-history"
        assert stored.meta["rows"] == 2

    async def test_fail(self, session):
        repo = FileImportRepo(session)
        file_import = await repo.create("history.csv", 120)

        await repo.fail(file_import, "Cannot parse row 3: bad")

        assert file_import.status == SyncStatus.ERROR.value
        assert file_import.error == "Cannot parse row 3: bad"
