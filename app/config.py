from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # JWT Authentication
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Registration
    REGISTRATION_SECRET: str
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # Invites
    INVITE_TTL_DAYS: int = 7
    INVITE_MAX_USES_LIMIT: int = 50
    INVITE_CODE_BYTES: int = 8

    # Tenants
    DEFAULT_MAX_USERS: int = 5
    DEFAULT_SUBSCRIPTION_STATUS: str = "active"

    # Application
    APP_NAME: str = "Electricity Tracker API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = ""
    CORS_ALLOW_CREDENTIALS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
