"""
Configuration loaded from environment variables. Fail-fast on invalid values.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings
from pydantic import Field


class Config(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True, "extra": "ignore"}

    # Credentials (empty private key = watch-only mode, nothing is signed or sent)
    private_key: str = Field(default="", description="Polygon wallet private key (hex)")
    polymarket_profile_address: str = Field(default="", description="Polymarket proxy address")
    signature_type: int = Field(default=0, ge=0, le=2)

    # API endpoints
    clob_host: str = "https://clob.polymarket.com"
    gamma_host: str = "https://gamma-api.polymarket.com"
    polygon_rpc_url: str = "https://polygon-rpc.com"
    chain_id: int = 137  # Polygon mainnet

    # Contracts used by the on-chain split
    negrisk_adapter_address: str = "0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296"
    collateral_token_address: str = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"  # USDC.e

    # Scheduling (fixed delay between the end of one run and the start of the next)
    ingest_interval_sec: float = Field(default=10.0, gt=0)
    scan_interval_sec: float = Field(default=5.0, gt=0)

    # Ingestion sweep
    market_page_size: int = Field(default=100, ge=1, le=500)
    max_markets_per_sweep: int = Field(default=1000, ge=1)
    # Markets whose last-trade outcome prices sum below this are never worth a book fetch
    prefilter_min_price_sum: Decimal = Field(default=Decimal("0.90"), ge=0)
    # Market-unit limiter: one permit per market processed (each unit = 2 book requests)
    ingest_rate_per_sec: float = Field(default=10.0, gt=0)
    ingest_burst: float = Field(default=10.0, ge=1)
    # Sizes the OS thread pool only; throughput is bounded by the limiter above
    ingest_max_workers: int = Field(default=64, ge=1, le=512)
    # Cached markets not refreshed for this long before a sweep started are dropped
    market_stale_after_sec: float = Field(default=300.0, gt=0)

    # HTTP client limiter + retries (independent of the market-unit limiter)
    http_rate_per_sec: float = Field(default=20.0, gt=0)
    http_burst: float = Field(default=20.0, ge=1)
    http_timeout_sec: float = Field(default=30.0, gt=0)
    http_max_retries: int = Field(default=3, ge=0, le=10)
    http_backoff_sec: float = Field(default=0.5, ge=0)

    # Strategy thresholds
    negrisk_target_size: Decimal = Field(default=Decimal("10"), gt=0)
    execution_buffer: Decimal = Field(default=Decimal("0.002"), ge=0)  # fees + slippage per set
    min_profit_threshold: Decimal = Field(default=Decimal("0.0001"), ge=0)
    cross_market_enabled: bool = True
    cross_market_max_size: Decimal = Field(default=Decimal("10"), gt=0)
    cross_market_min_size: Decimal = Field(default=Decimal("1"), gt=0)

    # Execution
    unwind_price_concession: Decimal = Field(default=Decimal("0.01"), ge=0, lt=1)
    order_tick_size: str = "0.01"
    split_gas_price_gwei: int = Field(default=100, gt=0)
    split_gas_limit: int = Field(default=500_000, gt=0)
    # Post-mortem records kept in memory, oldest dropped first
    max_execution_records: int = Field(default=1000, ge=1)

    log_level: str = "INFO"

    @property
    def watch_only(self) -> bool:
        """True when no signing credential is configured."""
        return not self.private_key


def load_config() -> Config:
    """Load and validate config from environment. Raises on invalid fields."""
    return Config()
