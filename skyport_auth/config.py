"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. The .env file is gitignored; .env.example is the template.

Priority order:
  1. Environment variables
  2. .env file values
  3. Defaults defined here

Usage:
    from skyport_auth.config import settings
    print(settings.BASE_URL)

Note: this is *process* configuration. The runtime "settings" document that
carries forceVerify lives in the document store and is modelled by
skyport_auth.schemas.site_settings.SiteSettings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the auth service.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: signs the session cookie
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Skyport Auth"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Document store ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/skyport.db"

    # --- Sessions ---
    # REQUIRED: No default, forces the operator to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: int = 60 * 24
    SESSION_COOKIE_NAME: str = "skyport_session"

    # --- Links and branding ---
    # Absolute origin used when building links inside emails
    BASE_URL: str = "http://localhost:8000"
    # Used when the "name" key is missing from the store
    DEFAULT_SITE_NAME: str = "Skyport"
    LOGIN_REDIRECT_PATH: str = "/instances"

    # --- Account lifecycle ---
    TOKEN_LENGTH: int = 30
    REGISTRATION_POLL_SECONDS: float = 1.0
    # Upper bound for any single store or mail call
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 10.0

    # --- Mail ---
    # "smtp" delivers for real, "log" only writes the message to the log
    MAIL_BACKEND: str = "log"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = False
    MAIL_FROM: str = "no-reply@skyport.local"

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
