from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "ledgersync"
    # overrides the db_* parts when set, e.g. "sqlite+aiosqlite:///ledger.db"
    database_url_override: str = ""
    encryption_key: str = "change-me-32-bytes-key-for-ferne"
    debug: bool = False

    http_rate_per_second: float = 10.0
    http_timeout: float = 30.0

    binance_base_url: str = "https://api.binance.com"
    binance_window_days: int = 90
    binance_concurrency: int = 10
    binance_cooldown_ms: int = 1000
    binance_trades_concurrency: int = 10
    binance_trades_cooldown_ms: int = 2000
    binance_genesis_ms: int = 1_498_867_200_000

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    class Config:
        env_file = ".env"
        extra = "ignore"
