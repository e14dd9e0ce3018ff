# mypy: disable-error-code="call-arg"
from decimal import Decimal
from typing import Optional

from pydantic import (
    PostgresDsn,
    RedisDsn,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings

from src.snapshots.scheduler import next_run_after


class Settings(BaseSettings):
    """Application settings."""

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Stellar Stake House API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server
    PORT: int = 3001

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Authentication (admin endpoints)
    API_AUTH_TOKEN: SecretStr

    # Database
    DB_HOST: str = "db"
    DB_PORT: int = 5432
    DB_USER: str
    DB_PASSWORD: SecretStr
    DB_NAME: str = "stake_house"
    DATABASE_URL: Optional[PostgresDsn] = None

    # Redis
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: SecretStr
    REDIS_URL: Optional[RedisDsn] = None

    # Cache TTL (in seconds)
    CACHE_TTL: int = 120  # 2 minutes

    # Stellar
    STELLAR_HORIZON_URL: str = "https://horizon-testnet.stellar.org"
    STAKING_TOKEN_CODE: str = "KALE"
    STAKING_TOKEN_ISSUER: Optional[str] = None
    LEDGER_MAX_CONCURRENCY: int = 10
    LEDGER_TIMEOUT: float = 10.0  # seconds per Horizon call

    # Rewards
    REWARD_RATE: Decimal = Decimal("0.05")  # annual
    TOKEN_PRICE_BRL: Decimal = Decimal("2.50")
    TOKEN_PRICE_USD: Decimal = Decimal("0.50")

    # Snapshots, UTC. Each user is snapshotted at most once per UTC day, so
    # extra daily fires only pick up users that were skipped earlier.
    SNAPSHOT_INTERVAL_CRON: str = "0 0 * * *"
    SNAPSHOT_LOCK_TTL: int = 60 * 30  # 30 minutes

    @field_validator("SNAPSHOT_INTERVAL_CRON")
    @classmethod
    def validate_cron(cls, value: str) -> str:
        fields = value.split()
        if len(fields) != 5:
            raise ValueError(
                "SNAPSHOT_INTERVAL_CRON must have 5 fields "
                f"(minute hour day month weekday), got {value!r}"
            )
        expression = " ".join(fields)
        # Raises ValueError for out-of-range values and dates that never occur
        next_run_after(expression)
        return expression

    @field_validator("REWARD_RATE")
    @classmethod
    def validate_reward_rate(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("REWARD_RATE must not be negative")
        return value

    @model_validator(mode="after")
    def build_database_url(self) -> "Settings":
        if not self.DATABASE_URL:
            password = (
                self.DB_PASSWORD.get_secret_value()
                if isinstance(self.DB_PASSWORD, SecretStr)
                else self.DB_PASSWORD
            )

            self.DATABASE_URL = PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.DB_USER,
                password=password,
                host=self.DB_HOST,
                port=self.DB_PORT,
                path=self.DB_NAME,
            )
        return self

    @model_validator(mode="after")
    def build_redis_url(self) -> "Settings":
        if not self.REDIS_URL:
            password = (
                self.REDIS_PASSWORD.get_secret_value()
                if isinstance(self.REDIS_PASSWORD, SecretStr)
                else self.REDIS_PASSWORD
            )

            self.REDIS_URL = RedisDsn.build(
                scheme="redis",
                username="default",
                password=password,
                host=self.REDIS_HOST,
                port=self.REDIS_PORT,
                path="/0",
            )
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True
        validate_default = True


settings = Settings()
