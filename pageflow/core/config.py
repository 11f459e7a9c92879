# pageflow/core/config.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    LIMITER_STORAGE_URI: str = ""
    LOG_LEVEL: str = "INFO"
    LAYOUT_RATE_LIMIT: str = "60/minute"
    HIGHLIGHT_RATE_LIMIT: str = "600/minute"

    # Layout geometry, in canvas units
    NODE_WIDTH: float = Field(default=180, gt=0)
    NODE_HEIGHT: float = Field(default=48, gt=0)
    NODE_SEP: float = Field(default=32, ge=0)
    RANK_SEP: float = Field(default=48, ge=0)
    ORDERING_PASSES: int = Field(default=8, ge=0)
    STRICT_LAYOUT: bool = False
    LAYOUT_CACHE_SIZE: int = 64

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
