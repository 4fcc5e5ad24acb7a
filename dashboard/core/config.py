from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # Embedded store (row cache + LOCAL backend)
    DATABASE_URL: str = "sqlite:///./data/dashboard.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    SLACK_WEBHOOK_URL: str | None = None

    # Query mode read at the start of every batch
    QUERY_MODE: Literal["test", "production"] = "test"
    QUERY_TIMEOUT_SECONDS: float = 30.0

    # Worker
    WORKER_PACING_SECONDS: float = 2.0
    WORKER_ESCALATION_THRESHOLD: int = 3  # consecutive connection failures, 0 disables
    WORKER_AUTOSTART: bool = False

    # ERP (SQL Server over ODBC)
    ERP_DSN: str | None = None
    ERP_ODBC_CONNECTION_STRING: str | None = None
    ERP_RETRY_ATTEMPTS: int = 3
    ERP_QUALIFY_TABLES: bool = True

    # Legacy desktop database file
    LEGACY_FILE_PATH: str | None = None
    LEGACY_ODBC_DRIVER: str = "Microsoft Access Driver (*.mdb, *.accdb)"

    # Docs Configuration
    DOCS_ENABLED: bool | None = None  # Override docs setting (None = auto based on ENV)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "dev"

    @property
    def debug_enabled(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.is_development

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            # In production, minimum INFO level (ignore DEBUG)
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    @property
    def docs_enabled(self) -> bool:
        """Swagger/ReDoc docs enabled based on environment or override."""
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        return self.is_development

    @property
    def erp_configured(self) -> bool:
        return bool(self.ERP_ODBC_CONNECTION_STRING or self.ERP_DSN)

    @property
    def legacy_configured(self) -> bool:
        return bool(self.LEGACY_FILE_PATH)


settings = Settings()
