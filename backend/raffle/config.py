from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Raffle Tracker"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    # Reddit
    REDDIT_BASE_URL: str = "https://www.reddit.com"
    REDDIT_USER_AGENT: str = "raffle-tracker/1.0"
    REDDIT_TIMEOUT_SECONDS: float = 15.0

    # Share links and sessions
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    SESSION_TTL_DAYS: int = 7

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
