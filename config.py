from functools import lru_cache
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from the environment or a local .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = Field(default="dev", description="Deployment environment, e.g. dev/staging/prod")
    SERVICE_NAME: str = Field(default="pixshare-api", description="Service name")

    DATABASE_PATH: str = Field(default="db.sqlite3", description="SQLite database file")

    SECRET_KEY: str = Field(default="change-me-in-production", description="JWT signing key")
    ALGORITHM: str = Field(default="HS256", description="JWT signing algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7, description="Session lifetime")
    BCRYPT_ROUNDS: int = Field(default=12, description="bcrypt cost factor")

    UPLOAD_FOLDER: str = Field(default="uploads", description="Root folder for stored media")
    MAX_MEDIA_SIZE: int = Field(default=50 * 1024 * 1024, description="Upload size limit in bytes")

    CORS_ORIGINS: List[str] = Field(default=["http://localhost:4200"], description="Allowed CORS origins")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    BOOTSTRAP_ADMIN_EMAIL: Optional[str] = Field(default=None, description="Admin account created at startup")
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = Field(default=None, description="Password for the bootstrap admin")


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance."""
    return Settings()
