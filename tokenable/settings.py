# tokenable/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import logging
from pathlib import Path

# Configure logging for settings module
logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

# This settings.py file is at <project>/tokenable/settings.py
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

if DOTENV_PATH.exists():
    logger.debug(f"Loading settings with .env file at: {DOTENV_PATH}")
else:
    logger.debug(
        f".env file not found at {DOTENV_PATH}. "
        "Relying on OS environment variables or defaults."
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_name: str = "Tokenable"
    debug_mode: bool = False
    log_level: str = "INFO"

    # SQLite configuration
    sqlite_db_path: str = "./tokenable_data.sqlite3"
    sqlite_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds a connection waits on a locked database before raising."
    )

    # Personal access token settings
    token_bytes_length: int = Field(
        default=32,
        ge=20,
        description="Random bytes per secret before hex encoding (at least 160 bits)."
    )
    token_default_lifetime_hours: Optional[int] = Field(
        default=None,
        ge=0,
        description="Lifetime applied when a token is issued without an explicit expiry. None means never."
    )
    token_issue_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Secret generation attempts before giving up on a hash collision."
    )
    purge_batch_size: int = Field(
        default=500,
        ge=1,
        description="Rows deleted per transaction when purging expired tokens."
    )

    # Security settings
    admin_api_key: Optional[str] = Field(
        default=None,
        description="API Key for accessing admin routes."
    )

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )


# Initialize settings instance
settings = Settings()

logger.debug(
    f"Settings loaded: app_name='{settings.app_name}', debug_mode={settings.debug_mode}, "
    f"sqlite_db_path='{settings.sqlite_db_path}', "
    f"token_bytes_length={settings.token_bytes_length}, "
    f"token_default_lifetime_hours={settings.token_default_lifetime_hours}, "
    f"admin_api_key={'********' if settings.admin_api_key else 'None'}"
)
