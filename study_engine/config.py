from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # provider
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = 'gpt-4o-mini'
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_TIMEOUT: float = 30.0
    PROVIDER_MAX_TOKENS: int = 2000
    PROVIDER_TEMPERATURE: float = 0.5
    PROVIDER_RETRY_ATTEMPTS: int = 2
    PROVIDER_RETRY_MAX_WAIT: int = 10

    # service state defaults, used when nothing is persisted yet
    DEFAULT_MODE: str = 'offline'
    DAILY_QUOTA: int = 50
    MONTHLY_QUOTA: int = 1000

    # persistence
    STORAGE_BACKEND: str = 'file'
    STORAGE_PATH: str = 'data/study_engine.json'
    STATE_STORAGE_KEY: str = 'study_engine:service_state'
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None

    # http
    HOST: str = '0.0.0.0'
    PORT: int = 8000
    ENVIRONMENT: str = 'development'
    LOG_LEVEL: str = 'INFO'
    CORS_ORIGIN: str = '*'

    model_config = SettingsConfigDict(env_file='.env', extra='ignore')


@lru_cache
def get_settings() -> Settings:
    return Settings()
