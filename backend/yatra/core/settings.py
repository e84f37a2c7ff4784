from functools import lru_cache
from pathlib import Path
from typing import Optional, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DB_URL: str = "postgresql://postgres:password@db:5432/yatradb"
    DB_ECHO: bool = False  # Set to True for SQL query logging in development
    DB_CREATE_TABLES: bool = False  # create missing tables on startup

    # Connection Pool Settings
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # API Keys (only the completion key is mandatory for generation)
    SONAR_API_KEY: str = ""
    OPENWEATHER_API_KEY: str = ""
    GOOGLE_MAPS_API_KEY: str = ""
    UNSPLASH_ACCESS_KEY: str = ""

    # Upstream endpoints
    LLM_API_URL: str = "https://api.perplexity.ai/chat/completions"
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5"
    GOOGLE_MAPS_BASE_URL: str = "https://maps.googleapis.com/maps/api"
    UNSPLASH_BASE_URL: str = "https://api.unsplash.com"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Completion request
    LLM_MODEL: str = "llama-3.1-sonar-small-128k-online"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4000
    LLM_STRICT_JSON: bool = False  # reject replies that are not pure JSON

    # Generation pipeline
    DAILY_GENERATION_LIMIT: int = Field(default=5, ge=1)
    FORECAST_ENTRIES: int = 5
    POI_SEARCH_RADIUS_M: int = 5000
    POI_LIMIT: int = 5
    IMAGE_REQUEST_DELAY_SECONDS: float = Field(default=0.1, ge=0)

    # Rate Limiting (per client address, independent of the daily quota)
    ENABLE_RATE_LIMITING: bool = True
    RATE_LIMIT_GENERATE: str = "5/minute"
    RATE_LIMIT_READ: str = "60/minute"
    RATE_LIMIT_LIST: str = "30/minute"
    RATE_LIMIT_CREATE: str = "20/minute"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "app.log"

    # CORS
    ALLOWED_ORIGINS: Union[list, str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse ALLOWED_ORIGINS from comma-separated string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    # Security (tokens are issued by the identity provider and share this secret)
    JWT_SECRET: str = "change_me"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parents[3] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
