from ledgersync.config import Settings
from ledgersync.container import Container
from ledgersync.db.session import create_tables
from ledgersync.infra.http.rate_limited_client import RateLimitedClient
from ledgersync.sync.service import SyncService

CSV = (
    "User_ID,UTC_Time,Account,Operation,Coin,Change,Remark\n"
    "1,2023-11-14 22:13:20,Spot,Deposit,USDT,100,\n"
)


def _container() -> Container:
    container = Container()
    container.settings.override(Settings(
        database_url_override="sqlite+aiosqlite:///:memory:",
        encryption_key="test-key",
    ))
    return container


class TestContainer:
    def test_settings_override(self):
        container = _container()

        assert container.settings().database_url == "sqlite+aiosqlite:///:memory:"
        assert container.registry() is container.registry()

    def test_http_client_is_new_per_call(self):
        container = _container()

        assert isinstance(container.http_client(), RateLimitedClient)
        assert container.http_client() is not container.http_client()

    async def test_sync_service_imports_into_configured_database(self):
        container = _container()
        engine = container.engine()
        await create_tables(engine)

        async with container.session_factory()() as session:
            service = container.sync_service(session=session)
            result = await service.import_file("statement.csv", CSV)
            await session.commit()

        assert isinstance(service, SyncService)
        assert result.metadata["parser_id"] == "binance-account-statement"
        assert result.metadata["logs"] == 1
        await engine.dispose()
