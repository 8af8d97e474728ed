from collections.abc import Iterable
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.db.models.ledger import AuditLogRecord, LedgerTransactionRecord
from ledgersync.domain.enums import AuditLogOperation, DataSource, TransactionType
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, Transaction


def _source(connection_id: Optional[str]) -> str:
    return (DataSource.CEX_API if connection_id else DataSource.CSV_IMPORT).value


class LedgerRepo:
    """Audit logs and transactions keyed by their deterministic ids.

    Saving an entity whose id already exists overwrites it, so re-syncing an
    overlapping range never duplicates ledger rows.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_logs(self, logs: Iterable[AuditLog]) -> int:
        count = 0
        for log in logs:
            await self._session.merge(AuditLogRecord(
                id=log.id,
                source_index=log.import_index.source_index,
                leg=log.import_index.leg,
                asset_id=log.asset_id,
                wallet=log.wallet,
                change=log.change,
                operation=log.operation.value,
                timestamp=log.timestamp,
                platform=log.platform,
                tx_id=log.tx_id,
                connection_id=log.connection_id,
                file_import_id=log.file_import_id,
                counterparty=log.counterparty,
                source=_source(log.connection_id),
            ))
            count += 1
        await self._session.flush()
        return count

    async def save_transactions(self, transactions: Iterable[Transaction]) -> int:
        count = 0
        for tx in transactions:
            await self._session.merge(LedgerTransactionRecord(
                id=tx.id,
                type=tx.type.value,
                timestamp=tx.timestamp,
                source_index=tx.import_index.source_index,
                platform=tx.platform,
                wallet=tx.wallet,
                incoming=tx.incoming,
                incoming_asset=tx.incoming_asset,
                outgoing=tx.outgoing,
                outgoing_asset=tx.outgoing_asset,
                fee=tx.fee,
                fee_asset=tx.fee_asset,
                price=tx.price,
                meta=tx.metadata,
                connection_id=tx.connection_id,
                file_import_id=tx.file_import_id,
                source=_source(tx.connection_id),
            ))
            count += 1
        await self._session.flush()
        return count

    async def list_logs(
        self,
        connection_id: Optional[str] = None,
        file_import_id: Optional[str] = None,
    ) -> list[AuditLog]:
        """Audit logs in canonical ledger order."""
        query = select(AuditLogRecord)
        if connection_id:
            query = query.where(AuditLogRecord.connection_id == connection_id)
        if file_import_id:
            query = query.where(AuditLogRecord.file_import_id == file_import_id)
        result = await self._session.execute(query.order_by(
            AuditLogRecord.timestamp.asc(),
            AuditLogRecord.source_index.asc(),
            AuditLogRecord.leg.asc(),
            AuditLogRecord.id.asc(),
        ))
        return [self._to_log(record) for record in result.scalars().all()]

    async def list_transactions(
        self,
        connection_id: Optional[str] = None,
        file_import_id: Optional[str] = None,
    ) -> list[Transaction]:
        query = select(LedgerTransactionRecord)
        if connection_id:
            query = query.where(LedgerTransactionRecord.connection_id == connection_id)
        if file_import_id:
            query = query.where(LedgerTransactionRecord.file_import_id == file_import_id)
        result = await self._session.execute(query.order_by(
            LedgerTransactionRecord.timestamp.asc(),
            LedgerTransactionRecord.source_index.asc(),
            LedgerTransactionRecord.id.asc(),
        ))
        return [self._to_transaction(record) for record in result.scalars().all()]

    async def count_logs(self, connection_id: Optional[str] = None) -> int:
        query = select(func.count()).select_from(AuditLogRecord)
        if connection_id:
            query = query.where(AuditLogRecord.connection_id == connection_id)
        result = await self._session.execute(query)
        return result.scalar_one()

    @staticmethod
    def _to_log(record: AuditLogRecord) -> AuditLog:
        return AuditLog(
            id=record.id,
            import_index=ImportIndex(record.source_index, record.leg),
            asset_id=record.asset_id,
            wallet=record.wallet,
            change=record.change,
            operation=AuditLogOperation(record.operation),
            timestamp=record.timestamp,
            platform=record.platform,
            tx_id=record.tx_id,
            connection_id=record.connection_id,
            file_import_id=record.file_import_id,
            counterparty=record.counterparty,
        )

    @staticmethod
    def _to_transaction(record: LedgerTransactionRecord) -> Transaction:
        return Transaction(
            id=record.id,
            type=TransactionType(record.type),
            timestamp=record.timestamp,
            import_index=ImportIndex(record.source_index),
            platform=record.platform,
            wallet=record.wallet,
            incoming=record.incoming,
            incoming_asset=record.incoming_asset,
            outgoing=record.outgoing,
            outgoing_asset=record.outgoing_asset,
            fee=record.fee,
            fee_asset=record.fee_asset,
            price=record.price,
            metadata=record.meta or {},
            connection_id=record.connection_id,
            file_import_id=record.file_import_id,
        )
