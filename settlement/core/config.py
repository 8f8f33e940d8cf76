"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./settlement.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None
    create_tables: bool = True


class SecuritySettings(BaseModel):
    """Identity provider token verification and cron guard."""

    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    audience: Optional[str] = None
    cron_secret: str = Field(default="change-me-cron", min_length=8)


class PaystackSettings(BaseModel):
    secret_key: str = ""
    base_url: str = "https://api.paystack.co"
    callback_url: Optional[str] = None
    timeout: float = 10.0
    currency: str = "GHS"


class SupplierSettings(BaseModel):
    """Fallback supply provider used when no provider row is configured."""

    base_url: str = "https://skytechgh.com"
    api_key: str = ""
    api_secret: str = ""
    orders_path: str = "/api/v1/orders"
    balance_path: str = "/api/v1/balance"
    prices_path: str = "/api/v1/prices"
    timeout: float = 10.0


class SettlementSettings(BaseModel):
    cooldown_minutes: int = 20
    sweep_min_age_minutes: int = 5
    sweep_batch_size: int = 100
    sweep_request_delay: float = 0.5
    failed_order_age_hours: int = 24
    verify_attempts: int = 2
    verify_retry_delay: float = 1.0
    split_tolerance_minor: int = 0


class FulfillmentSettings(BaseModel):
    workers: int = 4
    queue_size: int = 1000
    max_attempts: int = 3
    retry_base_delay: float = 2.0


class SchedulerSettings(BaseModel):
    enabled: bool = True
    sweep_interval_minutes: int = 5
    cleanup_interval_minutes: int = 60


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    project_name: str = "Resellers Hub Settlement"
    api_prefix: str = "/api"
    currency: str = "GHS"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    paystack: PaystackSettings = PaystackSettings()
    supplier: SupplierSettings = SupplierSettings()
    settlement: SettlementSettings = SettlementSettings()
    fulfillment: FulfillmentSettings = FulfillmentSettings()
    scheduler: SchedulerSettings = SchedulerSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def cooldown_seconds(self) -> int:
        return self.settlement.cooldown_minutes * 60


@lru_cache()
def get_settings() -> Settings:
    return Settings()
