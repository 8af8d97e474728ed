"""SyncService — run a connection sync or a file import and persist the ledger."""

import logging
from collections.abc import Callable
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.config import Settings
from ledgersync.db.models.connection import Connection
from ledgersync.db.repos.connection_repo import ConnectionRepo
from ledgersync.db.repos.file_import_repo import FileImportRepo
from ledgersync.db.repos.ledger_repo import LedgerRepo
from ledgersync.domain.enums import SyncStatus
from ledgersync.domain.models.sync import FileImportResult, SyncResult
from ledgersync.engine.context import SyncContext
from ledgersync.exceptions import ConfigurationError
from ledgersync.infra.cex.binance_client import BinanceClient
from ledgersync.infra.cex.binance_connector import BinanceConnector, BinanceSyncOptions
from ledgersync.infra.cex.crypto import CredentialCipher
from ledgersync.infra.csv_import import CsvImporter
from ledgersync.infra.http.rate_limited_client import RateLimitedClient
from ledgersync.parser.registry import ParserRegistry

logger = logging.getLogger(__name__)


def binance_options(settings: Settings, overrides: Optional[dict[str, Any]] = None) -> BinanceSyncOptions:
    """Settings-level defaults, overridden by the connection's own options."""
    defaults = {
        "window_days": settings.binance_window_days,
        "concurrency": settings.binance_concurrency,
        "cooldown_ms": settings.binance_cooldown_ms,
        "trades_concurrency": settings.binance_trades_concurrency,
        "trades_cooldown_ms": settings.binance_trades_cooldown_ms,
        "genesis": settings.binance_genesis_ms,
    }
    return BinanceSyncOptions(**{**defaults, **(overrides or {})})


class SyncService:
    """Persist what a sync produced, or nothing at all when it fails.

    Only flushes; committing is up to the caller's unit of work.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: ParserRegistry,
        settings: Settings,
        http_client_factory: Callable[[], RateLimitedClient],
        cipher: Optional[CredentialCipher] = None,
    ) -> None:
        self._session = session
        self._registry = registry
        self._settings = settings
        self._http_client_factory = http_client_factory
        self._connections = ConnectionRepo(session, cipher)
        self._file_imports = FileImportRepo(session)
        self._ledger = LedgerRepo(session)

    def _new_context(self) -> SyncContext:
        return SyncContext(debug=self._settings.debug)

    async def sync_connection(
        self,
        connection: Connection,
        ctx: Optional[SyncContext] = None,
        until: Optional[int] = None,
    ) -> SyncResult:
        """Sync from the connection's cursor up to ``until`` (default: now)."""
        if connection.platform != "binance":
            raise ConfigurationError(f"Unsupported connection platform: {connection.platform}")

        ctx = ctx or self._new_context()
        await self._connections.set_status(connection, SyncStatus.SYNCING)

        try:
            api_key, api_secret = self._connections.credentials(connection)
            options = binance_options(self._settings, connection.options)
            async with self._http_client_factory() as http:
                client = BinanceClient(api_key, api_secret, http, base_url=self._settings.binance_base_url)
                connector = BinanceConnector(client, self._registry, options)
                result = await connector.sync(ctx, str(connection.id), since=connection.cursor, until=until)
        except Exception as exc:
            logger.exception("Sync of connection %s failed", connection.id)
            await self._connections.set_status(connection, SyncStatus.ERROR, str(exc)[:1000])
            raise

        await self._ledger.save_logs(result.log_map.values())
        await self._ledger.save_transactions(result.tx_map.values())
        await self._connections.advance_cursor(connection, result.new_cursor)
        await self._connections.set_status(
            connection, SyncStatus.CANCELLED if result.cancelled else SyncStatus.SYNCED,
        )

        logger.info(
            "Connection %s synced: %d logs, %d transactions, cursor %d%s",
            connection.id, len(result.log_map), len(result.tx_map), result.new_cursor,
            " (partial)" if result.cancelled else "",
        )
        return result

    async def import_file(
        self,
        name: str,
        text: str,
        ctx: Optional[SyncContext] = None,
        parser_context: Optional[dict[str, Any]] = None,
    ) -> FileImportResult:
        """Import a CSV export. A bad row rejects the whole file."""
        ctx = ctx or self._new_context()
        file_import = await self._file_imports.create(name, len(text.encode()))

        try:
            result = await CsvImporter(self._registry).parse(text, str(file_import.id), ctx, parser_context)
        except Exception as exc:
            logger.warning("Import of %s rejected: %s", name, exc)
            await self._file_imports.fail(file_import, str(exc))
            raise

        await self._ledger.save_logs(result.logs)
        await self._ledger.save_transactions(result.transactions)
        await self._file_imports.complete(file_import, result.metadata)
        return result
