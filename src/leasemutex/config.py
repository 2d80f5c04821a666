from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEASEMUTEX_", env_file=".env", extra="ignore")

    app_name: str = "leasemutex"

    # Store selection: memory, redis or cosmos
    store_backend: str = "redis"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    redis_key_prefix: str = "leasemutex:lock:"

    # Azure Cosmos DB (when store_backend="cosmos")
    cosmos_endpoint: str | None = None
    cosmos_key: str | None = None
    cosmos_connection_string: str | None = None
    cosmos_database: str = "leasemutex"
    cosmos_container: str = "mutex"

    # Mutex defaults
    default_lock_name: str = "default-mutex"
    default_lease_seconds: float = Field(default=30.0, gt=0)
    operation_timeout: float | None = Field(default=10.0, gt=0)

    # Observability
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
