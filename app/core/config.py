from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding='utf-8', extra='ignore')

    # --- General ---
    PROJECT_NAME: str = "Price Catalog Import Service"
    API_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = Field("stage", validation_alias="ENV", alias_priority=2)
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # "text" or "json"

    # --- Database ---
    DATABASE_URL: str = "sqlite:///./price_catalog.sqlite3"

    # --- Import file checks ---
    IMPORT_MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024
    IMPORT_ALLOWED_EXTENSION: str = ".csv"

    # --- Transaction / retry ---
    IMPORT_ROLLBACK_ERROR_RATE: float = 0.5
    IMPORT_MAX_RETRIES: int = 3
    IMPORT_RETRY_BACKOFF_SECONDS: float = 0.1
    IMPORT_ISOLATION_LEVEL: Optional[str] = None
    TRANSIENT_ERROR_PATTERNS: List[str] = [
        "deadlock",
        "lock wait timeout",
        "database is locked",
    ]

    # --- Reporting ---
    IMPORT_DETAILED_ERRORS_LIMIT: int = 10
    PREVIEW_DEFAULT_MAX_ROWS: int = 10

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        v = v.strip().lower()
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v

    @field_validator('IMPORT_ROLLBACK_ERROR_RATE')
    @classmethod
    def validate_error_rate(cls, v):
        if not 0 <= v <= 1:
            raise ValueError("IMPORT_ROLLBACK_ERROR_RATE must be between 0 and 1")
        return v


# Instantiate
settings = Settings()
