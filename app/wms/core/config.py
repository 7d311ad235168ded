from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "WMS-INBOUND"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./wms_inbound.db"
    DEFAULT_ORG_NAME: str = "Default Organization"
    DEFAULT_WAREHOUSE_NAME: str = "Main Warehouse"
    DEFAULT_CLIENT_NAME: str = "Default Client"
    METRICS_ENABLED: bool = True
    DOCUMENT_NUMBER_MAX_ATTEMPTS: int = 5
    # auto: inspect inbound_receipt_lines once per engine for the location_id column
    RECEIPT_LINE_LOCATION_MODE: Literal["auto", "enabled", "disabled"] = "auto"


settings = Settings()
