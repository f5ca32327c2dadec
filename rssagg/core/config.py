from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "rssagg"

    # Application
    DEBUG: bool = False
    JWT_SECRET: str = Field(min_length=1)
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Sessions
    TOKEN_TTL_HOURS: int = 24
    BCRYPT_ROUNDS: int = 8  # Deliberately cheap work factor
    COOKIE_SECURE: bool = False

    # Feed polling
    FETCH_INTERVAL_MINUTES: int = 30
    FEED_FETCH_TIMEOUT_SECONDS: float = 30.0
    MAX_PENDING_POLL_RUNS: int = Field(default=1, ge=1)

    # Posts
    RECENT_POSTS_LIMIT: int = 50

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def compose_database_url(self) -> "Settings":
        """Build the asyncpg URL from the DB_* parts when DATABASE_URL is unset"""
        if not self.DATABASE_URL:
            self.DATABASE_URL = URL.create(
                "postgresql+asyncpg",
                username=self.DB_USER,
                password=self.DB_PASSWORD or None,
                host=self.DB_HOST,
                port=self.DB_PORT,
                database=self.DB_NAME,
            ).render_as_string(hide_password=False)
        return self


settings = Settings()
