"""
# Configuration Management

This module provides the **centralized configuration system** for the Content Forum API.
Built on **Pydantic Settings**, it loads values from an optional configuration file and the
process environment, validates them at startup, and exposes a single `settings` object.

## Configuration Hierarchy

Values are resolved in the following order (first match wins):

1. **Environment variables** already present in the process.
2. **Config file** pointed to by `CONTENT_FORUM_CONFIG_PATH`.
3. **`.env` file** in the project root.
4. **Field defaults** declared on `Settings`.

If no configuration file is found, the application runs in **environment-only mode**, which is
the usual setup for containerized deployments.

## Configuration Groups

- **Server**: `HOST`, `PORT`, `DEBUG`, `BASE_URL`, `CORS_ORIGINS`
- **Authentication**: `SECRET_KEY`, `ALGORITHM`, token lifetimes, `BCRYPT_ROUNDS`
- **MongoDB**: URL, database name, timeouts, optional credentials
- **External services**: identity GraphQL endpoint, product catalog, image CDN
- **Uploads & jobs**: upload directory, size/MIME limits, cleanup cron, retention
- **Logging**: `DEFAULT_LOG_LEVEL`, `LOG_FORMAT`

## Usage

```python
from content_forum.config import settings

client = AsyncIOMotorClient(settings.MONGODB_URL)
secret = settings.SECRET_KEY.get_secret_value()
```

## Security

Secrets (`SECRET_KEY`, `MONGODB_PASSWORD`, `CDN_API_KEY`) use `SecretStr` so they are never
printed in logs or tracebacks. `SECRET_KEY` is validated at startup and must not be a
placeholder value.

Attributes:
    CONFIG_ENV_VAR (str): Environment variable naming an explicit config file.
    PROJECT_ROOT (Path): Directory searched for a default `.env` file.
    settings (Settings): Global settings instance.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "CONTENT_FORUM_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determine the configuration file path.

    Checks, in order, the `CONTENT_FORUM_CONFIG_PATH` environment variable and a `.env`
    file in the project root. Returns `None` when neither exists, which switches the
    application to environment-only configuration.

    Returns:
        Optional[str]: Absolute path to the configuration file, or `None`.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=False)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **Server**: Host, port, debug mode, CORS.
    *   **Database**: MongoDB connection details.
    *   **Security**: JWT signing key and token lifetimes.
    *   **Integrations**: Identity GraphQL endpoint, product catalog, image CDN.
    *   **Jobs**: Daily file cleanup and counter reconciliation.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 5000
    DEBUG: bool = True
    BASE_URL: str = "http://localhost:5000"
    CORS_ORIGINS: str = ""

    # JWT configuration
    SECRET_KEY: SecretStr = SecretStr("")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_MINUTES: int = 10
    BCRYPT_ROUNDS: int = 12

    # MongoDB configuration
    MONGODB_URL: str = ""
    MONGODB_DATABASE: str = "content_forum"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None

    # External services
    GRAPHQL_USER_ENDPOINT: str = "https://beta-api.bachlongmobile.com/graphql"
    PRODUCTS_API_URL: str = "https://beta-api.bachlongmobile.com/graphql"
    PRODUCT_STORE_URL: str = "https://bachlongmobile.com"
    PRODUCT_DEFAULT_CURRENCY: str = "VND"
    CDN_UPLOAD_URL: str = "http://localhost:9000/upload"
    CDN_DELETE_URL: str = "http://localhost:9000/delete"
    CDN_API_KEY: Optional[SecretStr] = None
    EXTERNAL_API_TIMEOUT: float = 10.0

    # Uploads
    UPLOADS_DIR: str = "uploads"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024
    ALLOWED_MIME_TYPES: str = "image/jpeg,image/png,image/gif,image/webp"

    # Background jobs
    FILE_CLEANUP_CRON: str = "0 2 * * *"
    TEMP_FILE_RETENTION_DAYS: int = 1
    COUNTER_RECONCILIATION_ENABLED: bool = True

    # Slugs
    SLUG_MAX_ATTEMPTS: int = 100

    # Logging
    DEFAULT_LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s %(prefix)s %(message)s"

    @field_validator("SECRET_KEY", mode="before")
    @classmethod
    def no_hardcoded_secrets(cls, v: Any, info: Any) -> Any:
        """
        Validate that the signing secret is set and is not a placeholder.

        Raises:
            ValueError: If the value is empty, too short, or a placeholder.
        """
        raw = v.get_secret_value() if isinstance(v, SecretStr) else v
        if not raw or not str(raw).strip() or "change" in str(raw).lower():
            raise ValueError(f"{info.field_name} must be set via environment or .env and not hardcoded!")
        if len(str(raw)) < 16:
            raise ValueError(f"{info.field_name} must be at least 16 characters long")
        return v

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .env and not empty!")
        return v

    @field_validator("SLUG_MAX_ATTEMPTS", "MAX_FILE_SIZE", "TEMP_FILE_RETENTION_DAYS", mode="before")
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @property
    def is_production(self) -> bool:
        """`True` when running with `DEBUG=False`."""
        return not self.DEBUG

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse `CORS_ORIGINS` into a list, ignoring blanks."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def allowed_mime_types_list(self) -> List[str]:
        """Parse `ALLOWED_MIME_TYPES` into a list."""
        return [mime.strip() for mime in self.ALLOWED_MIME_TYPES.split(",") if mime.strip()]


settings: Settings = Settings()
