from dependency_injector import containers, providers

from ledgersync.config import Settings
from ledgersync.db.session import build_engine, build_session_factory
from ledgersync.infra.cex.crypto import CredentialCipher
from ledgersync.infra.http.rate_limited_client import RateLimitedClient
from ledgersync.parser.registry import build_default_registry
from ledgersync.sync.service import SyncService


class Container(containers.DeclarativeContainer):
    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    registry = providers.Singleton(build_default_registry)

    cipher = providers.Singleton(
        CredentialCipher,
        key=settings.provided.encryption_key,
    )

    http_client = providers.Factory(
        RateLimitedClient,
        rate_per_second=settings.provided.http_rate_per_second,
        timeout=settings.provided.http_timeout,
    )

    # one per unit of work: call with session=...
    sync_service = providers.Factory(
        SyncService,
        registry=registry,
        settings=settings,
        http_client_factory=http_client.provider,
        cipher=cipher,
    )
