from decimal import Decimal

from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from container + optionally from files
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="docker", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="faturacao", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))

    # Infrastructure
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/faturacao_db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    DB_ECHO: bool = Field(default=False, validation_alias=AliasChoices("DB_ECHO", "db_echo"))
    DB_POOL_SIZE: int = Field(default=5, validation_alias=AliasChoices("DB_POOL_SIZE", "db_pool_size"))
    REDIS_URL: str = Field(
        default="redis://redis:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )

    # Fiscal parameters (AGT)
    BASE_CURRENCY: str = Field(default="AOA", validation_alias=AliasChoices("BASE_CURRENCY", "base_currency"))
    DEFAULT_EXCHANGE_RATES: dict[str, Decimal] = Field(
        default={"AOA": Decimal("1"), "USD": Decimal("850"), "EUR": Decimal("920"), "BRL": Decimal("170")},
        validation_alias=AliasChoices("DEFAULT_EXCHANGE_RATES", "default_exchange_rates"),
    )
    TAX_RATE_TIERS: list[Decimal] = Field(
        default=[Decimal("0"), Decimal("5"), Decimal("7"), Decimal("14")],
        validation_alias=AliasChoices("TAX_RATE_TIERS", "tax_rate_tiers"),
    )
    DEFAULT_TAX_RATE: Decimal = Field(default=Decimal("14"), validation_alias=AliasChoices("DEFAULT_TAX_RATE", "default_tax_rate"))
    WITHHOLDING_THRESHOLD_AOA: Decimal = Field(
        default=Decimal("20000"),
        validation_alias=AliasChoices("WITHHOLDING_THRESHOLD_AOA", "withholding_threshold_aoa"),
    )
    WITHHOLDING_RATE: Decimal = Field(default=Decimal("0.065"), validation_alias=AliasChoices("WITHHOLDING_RATE", "withholding_rate"))
    SIMPLIFIED_REGIME_RATE: Decimal = Field(
        default=Decimal("0.07"),
        validation_alias=AliasChoices("SIMPLIFIED_REGIME_RATE", "simplified_regime_rate"),
    )
    RETENTION_FACTORS: dict[str, Decimal] = Field(
        default={"NONE": Decimal("0"), "CAT_50": Decimal("0.5"), "CAT_100": Decimal("1")},
        validation_alias=AliasChoices("RETENTION_FACTORS", "retention_factors"),
    )

    # Sequence allocation
    SEQUENCE_MAX_RETRIES: int = Field(default=5, validation_alias=AliasChoices("SEQUENCE_MAX_RETRIES", "sequence_max_retries"))

    # Insight / suggestion service (external text API)
    INSIGHT_API_URL: str = Field(default="", validation_alias=AliasChoices("INSIGHT_API_URL", "insight_api_url"))
    INSIGHT_API_KEY: str = Field(default="", validation_alias=AliasChoices("INSIGHT_API_KEY", "insight_api_key"))
    INSIGHT_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        validation_alias=AliasChoices("INSIGHT_TIMEOUT_SECONDS", "insight_timeout_seconds"),
    )


settings = Settings()
