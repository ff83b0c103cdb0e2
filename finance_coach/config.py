import os
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


"""CORS allowlist (dev defaults cover the local web app on 3000).
Read from env and split on commas; strip whitespace and any stray quotes per item.
"""
_cors_env = os.getenv(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1:3000,http://localhost:3000",
)
ALLOW_ORIGINS = [
    o.strip().strip('"').strip("'")
    for o in (_cors_env.split(",") if _cors_env else [])
    if o and o.strip().strip('"').strip("'")
]


class Settings(BaseSettings):
    APP_ENV: str = os.getenv("APP_ENV", "dev")  # dev | test | prod
    DATABASE_URL: str = "sqlite:///./data/finance.db"
    API_PREFIX: str = "/api"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = _env_bool("LOG_JSON", True)

    # Engine defaults exposed to the HTTP layer
    SUBSCRIPTIONS_MIN_CONFIDENCE: float = 0.6
    INSIGHTS_DEFAULT_LIMIT: int = 6

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
