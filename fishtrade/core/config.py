import json
from typing import List, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Fishtrade Backend"
    env: str = "dev"
    log_level: str = "INFO"

    # DATABASE
    database_url: str = "sqlite:///./fishtrade.sqlite3"
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)
    db_lock_timeout_ms: int = Field(default=5000, ge=100, le=120_000)

    # ORDERS
    walk_in_customer_name: str = "Walk-in Customer"

    # INVENTORY READ-MODEL
    risk_medium_days: int = Field(default=14, ge=1)
    risk_high_days: int = Field(default=30, ge=1)
    inventory_log_default_limit: int = Field(default=50, ge=1, le=500)
    inventory_log_max_limit: int = Field(default=500, ge=1, le=5000)

    api_timeout_hint_ms: int = Field(default=30000, ge=1000, le=1_800_000)

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    cors_origin_regex: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            if not v.strip():
                return []
            if v.startswith("["):
                parsed = json.loads(v)
                if not isinstance(parsed, list):
                    raise ValueError("CORS_ORIGINS JSON value must be a list")
                return [str(i).strip() for i in parsed if str(i).strip()]
            return [i.strip() for i in v.split(",") if i.strip()]
        if isinstance(v, list):
            return [str(i).strip() for i in v if str(i).strip()]
        raise ValueError(v)

    @field_validator("cors_origin_regex", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        if self.risk_high_days <= self.risk_medium_days:
            raise ValueError("RISK_HIGH_DAYS must be greater than RISK_MEDIUM_DAYS")
        if self.inventory_log_default_limit > self.inventory_log_max_limit:
            raise ValueError("INVENTORY_LOG_DEFAULT_LIMIT cannot exceed INVENTORY_LOG_MAX_LIMIT")

        env_value = self.env.lower().strip()
        if env_value in {"prod", "production"}:
            if "*" in self.cors_origins:
                raise ValueError("CORS_ORIGINS cannot contain '*' in production")
            if self.database_url.lower().startswith("sqlite"):
                raise ValueError("DATABASE_URL must point to PostgreSQL in production")
        return self

    @property
    def database_url_normalized(self) -> str:
        url = self.database_url.strip()
        if url.startswith("postgres://"):
            return "postgresql+psycopg://" + url[len("postgres://") :]
        if url.startswith("postgresql://"):
            return "postgresql+psycopg://" + url[len("postgresql://") :]
        return url

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
