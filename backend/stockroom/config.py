from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    database_url_override: Optional[str] = Field(None, alias="DATABASE_URL")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_name: str = Field("stockroom", alias="DB_NAME")
    db_user: str = Field("stockroom", alias="DB_USER")
    db_password: str = Field("stockroompass", alias="DB_PASSWORD")
    session_secret: str = Field("devsecret", alias="SESSION_SECRET")
    session_max_age_hours: int = Field(24, alias="SESSION_MAX_AGE_HOURS")
    rate_limit_login_per_min: int = Field(8, alias="RATE_LIMIT_LOGIN_PER_MIN")
    low_stock_threshold: int = Field(5, alias="LOW_STOCK_THRESHOLD")
    login_url: str = Field("/login", alias="LOGIN_URL")
    partition_enam: str = Field("site_enam", alias="PARTITION_ENAM")
    partition_minfopra: str = Field("site_minfopra", alias="PARTITION_MINFOPRA")
    partition_supptic: str = Field("site_supptic", alias="PARTITION_SUPPTIC")
    partition_ismp: str = Field("site_ismp", alias="PARTITION_ISMP")
    partition_warehouse: str = Field("inventory_warehouse_main", alias="PARTITION_WAREHOUSE")

    class Config:
        env_file = ".env"
        case_sensitive = False
        populate_by_name = True

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"prod", "production"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
