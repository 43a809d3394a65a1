import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///./whateat.db", alias="DATABASE_URL")
    auth_jwt_secret: str = Field("change-me", alias="AUTH_JWT_SECRET")
    auth_algorithm: str = Field("HS256", alias="AUTH_ALGORITHM")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-5", alias="OPENAI_MODEL")
    openai_base_url: str = Field("https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_max_completion_tokens: int = Field(4000, alias="OPENAI_MAX_COMPLETION_TOKENS")
    openai_timeout_seconds: float = Field(60.0, alias="OPENAI_TIMEOUT_SECONDS")
    openai_max_retries: int = Field(2, alias="OPENAI_MAX_RETRIES")
    import_user_agent: str = Field("whatEat-importer/1.0", alias="IMPORT_USER_AGENT")
    import_job_max_retries: int = Field(3, alias="IMPORT_JOB_MAX_RETRIES")
    daily_import_limit: int = Field(20, alias="DAILY_IMPORT_LIMIT")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
