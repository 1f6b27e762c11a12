from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = Field(default="POS Engine", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    database_url: str = Field(default="sqlite:///./pos_engine.db", alias="DATABASE_URL")
    currency: str = Field(default="USD", alias="CURRENCY")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # origen de ventas por turno: 'sql' (base local) | 'rest' (backend remoto)
    sales_backend: str = Field(default="sql", alias="SALES_BACKEND")
    backend_url: str = Field(default="http://127.0.0.1:54321", alias="BACKEND_URL")
    backend_api_key: str = Field(default="", alias="BACKEND_API_KEY")
    backend_timeout: float = Field(default=15.0, alias="BACKEND_TIMEOUT")
    split_tolerance: float = Field(default=0.01, alias="SPLIT_TOLERANCE")


settings = Settings()
