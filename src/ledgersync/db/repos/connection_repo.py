import uuid
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.db.models.connection import Connection
from ledgersync.domain.enums import SyncStatus
from ledgersync.infra.cex.crypto import CredentialCipher


class ConnectionRepo:
    def __init__(self, session: AsyncSession, cipher: CredentialCipher | None = None) -> None:
        self._session = session
        self._cipher = cipher

    async def get_by_id(self, connection_id: uuid.UUID) -> Optional[Connection]:
        result = await self._session.execute(
            select(Connection).where(Connection.id == connection_id)
        )
        return result.scalar_one_or_none()

    async def get_all(self, platform: Optional[str] = None) -> list[Connection]:
        query = select(Connection).order_by(Connection.created_at.asc())
        if platform:
            query = query.where(Connection.platform == platform)
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        platform: str,
        api_key: str,
        api_secret: str,
        label: Optional[str] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> Connection:
        """Create a connection, encrypting its credentials when a cipher is configured."""
        connection = Connection(
            platform=platform,
            label=label,
            api_key_encrypted=self._cipher.encrypt(api_key) if self._cipher else api_key,
            api_secret_encrypted=self._cipher.encrypt(api_secret) if self._cipher else api_secret,
            options=options or {},
        )
        self._session.add(connection)
        await self._session.flush()
        return connection

    def credentials(self, connection: Connection) -> tuple[str, str]:
        """Return the decrypted ``(api_key, api_secret)`` pair."""
        key = connection.api_key_encrypted or ""
        secret = connection.api_secret_encrypted or ""
        if self._cipher is None:
            return key, secret
        return self._cipher.decrypt(key), self._cipher.decrypt(secret)

    async def set_status(self, connection: Connection, status: SyncStatus, error: Optional[str] = None) -> None:
        connection.sync_status = status.value
        connection.last_error = error
        await self._session.flush()

    async def advance_cursor(self, connection: Connection, new_cursor: int) -> None:
        """Store the resumption point. The cursor never moves backwards."""
        if connection.cursor is None or new_cursor > connection.cursor:
            connection.cursor = new_cursor
        connection.last_synced_at = datetime.now(UTC)
        await self._session.flush()
