# src/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    애플리케이션 설정. 모든 값은 TASKFLOW_ 접두사가 붙은 환경 변수로 덮어쓸 수 있습니다.
    (예: TASKFLOW_DATABASE_URL=postgresql://...)
    """
    model_config = SettingsConfigDict(env_prefix="TASKFLOW_", env_file=".env", extra="ignore")

    database_url: str = Field(default="sqlite:///taskflow.db")
    host: str = Field(default="")
    port: int = Field(default=8000)
    token_ttl_minutes: int = Field(default=60, gt=0)
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
