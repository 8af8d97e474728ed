import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ledgersync.db.session import Base, create_tables
from ledgersync.domain.enums import AuditLogOperation
from ledgersync.domain.models.ledger import AuditLog, ImportIndex


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(eng)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture()
async def session(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


@pytest.fixture()
def make_log():
    """Factory for audit logs with sensible defaults."""

    def _make(
        log_id: str = "log-1",
        change: str = "1",
        asset_id: str = "binance:BTC",
        operation: AuditLogOperation = AuditLogOperation.DEPOSIT,
        timestamp: int = 1_700_000_000_000,
        index: int = 0,
        leg: int = 0,
        tx_id: str | None = None,
        **kwargs,
    ) -> AuditLog:
        fields = {
            "wallet": "Binance Spot",
            "platform": "binance",
            "connection_id": "conn-1",
            **kwargs,
        }
        return AuditLog(
            id=log_id,
            import_index=ImportIndex(index, leg),
            asset_id=asset_id,
            change=change,
            operation=operation,
            timestamp=timestamp,
            tx_id=tx_id,
            **fields,
        )

    return _make
