"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ChainSettings(BaseSettings):
    """EVM chain connection settings."""

    model_config = SettingsConfigDict(env_prefix="CHAIN_")

    rpc_url: str = "https://evmrpc-testnet.0g.ai"
    curve_address: str = ""  # empty disables seeding and event subscription
    request_timeout: float = 10.0  # seconds per JSON-RPC request


class IndexerSettings(BaseSettings):
    """Trade ledger retention and event polling parameters."""

    model_config = SettingsConfigDict(env_prefix="INDEXER_")

    retention_cap: int = 1000  # max trades held in memory
    recent_trades: int = 50  # trades embedded in the /trending payload
    default_trade_limit: int = 100  # /trades page size when limit is missing or invalid
    poll_interval: float = 2.0  # seconds between eth_getLogs polls
    start_block: int | None = None  # None = start from chain head
    max_block_range: int = 1000  # blocks per eth_getLogs request


class TrendSettings(BaseSettings):
    """Trending classification thresholds.

    Both comparisons are strictly greater-than against unrounded values.
    """

    model_config = SettingsConfigDict(env_prefix="TREND_")

    trending_velocity_threshold: Decimal = Decimal("2.0")  # trades/minute over 5 minutes
    high_volume_threshold: Decimal = Decimal("1.0")  # native tokens over 1 hour


class ServerSettings(BaseSettings):
    """HTTP query surface configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: list[str] = ["*"]


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    chain: ChainSettings = ChainSettings()
    indexer: IndexerSettings = IndexerSettings()
    trend: TrendSettings = TrendSettings()
    server: ServerSettings = ServerSettings()
