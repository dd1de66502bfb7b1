# app/core/config.py
from functools import lru_cache

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and cover:
    - DB connection for the slot store
    - Microsoft Graph client credentials (meeting creation + sendMail)
    - Organizer / admin notification addresses
    - SMTP fallback transport
    - Internal API key for diagnostics endpoints
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Discovery Call Scheduler"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    CORS_ALLOW_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of origins allowed by the CORS middleware.",
    )

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./scheduler.db",
        description="SQLAlchemy-compatible async database URL for booked slots.",
    )

    # --- Microsoft Graph ---
    GRAPH_TENANT_ID: str | None = None
    GRAPH_CLIENT_ID: str | None = None
    GRAPH_CLIENT_SECRET: str | None = None
    GRAPH_BASE_URL: AnyHttpUrl | None = None
    GRAPH_MAIL_SENDER: str | None = Field(
        default=None,
        description=(
            "Mailbox (UPN) used with /users/{sender}/sendMail. "
            "Falls back to ADMIN_EMAIL when unset."
        ),
    )

    # --- Booking ---
    ORGANIZER_EMAIL: str = Field(
        default="organizer@example.com",
        description="Default organizer of discovery calls when the request does not name one.",
    )
    ADMIN_EMAIL: str = Field(
        default="admin@example.com",
        description="Receives an admin notification for every booking (skipped if equal to the organizer).",
    )
    MEETING_SUBJECT: str = Field(
        default="Discovery Call",
        description="Subject used for meetings created through /api/schedule-discovery-call.",
    )
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Upper bound for each call to Graph, SMTP or any other external collaborator.",
    )
    SLOT_STORE_RETRY_SECONDS: float = Field(
        default=30.0,
        description="After the database fails, serve bookings from memory for this long before retrying it.",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    # --- SMTP / Email configuration ---
    SMTP_HOST: str | None = Field(
        default=None,
        description="SMTP server hostname for sending emails.",
    )
    SMTP_PORT: int = Field(
        default=587,
        description="SMTP server port (usually 587 for TLS).",
    )
    SMTP_USERNAME: str | None = Field(
        default=None,
        description="SMTP username (if authentication is required).",
    )
    SMTP_PASSWORD: str | None = Field(
        default=None,
        description="SMTP password (if authentication is required).",
    )
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Whether to use STARTTLS when connecting to SMTP.",
    )
    SMTP_FROM_ADDRESS: str | None = Field(
        default=None,
        description="From address used in confirmation and notification emails.",
    )

    @property
    def graph_configured(self) -> bool:
        return bool(self.GRAPH_TENANT_ID and self.GRAPH_CLIENT_ID and self.GRAPH_CLIENT_SECRET)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_FROM_ADDRESS)

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
