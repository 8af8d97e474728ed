import uuid
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.db.models.file_import import FileImport
from ledgersync.domain.enums import SyncStatus


class FileImportRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, name: str, size: int) -> FileImport:
        file_import = FileImport(name=name, size=size, status=SyncStatus.SYNCING.value)
        self._session.add(file_import)
        await self._session.flush()
        return file_import

    async def get_by_id(self, file_import_id: uuid.UUID) -> Optional[FileImport]:
        result = await self._session.execute(
            select(FileImport).where(FileImport.id == file_import_id)
        )
        return result.scalar_one_or_none()

    async def complete(self, file_import: FileImport, meta: dict[str, Any]) -> None:
        file_import.status = SyncStatus.SYNCED.value
        file_import.parser_id = meta.get("parser_id")
        file_import.meta = meta
        await self._session.flush()

    async def fail(self, file_import: FileImport, error: str) -> None:
        file_import.status = SyncStatus.ERROR.value
        file_import.error = error[:1000]
        await self._session.flush()
