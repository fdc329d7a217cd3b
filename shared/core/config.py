import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    # Full SQLAlchemy URL, takes precedence over the DB_* parts below
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")

    DB_USER: str | None = os.getenv("DB_USER")
    DB_PASS: str | None = os.getenv("DB_PASS")
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: str = os.getenv("DB_PORT", "5432")
    DB_NAME: str = os.getenv("DB_NAME", "billing")
    DB_SSLMODE: str | None = os.getenv("DB_SSLMODE")

    # Polling scheduler
    SCHEDULER_ENABLED: bool = os.getenv(
        "SCHEDULER_ENABLED", "True").lower() == "true"
    SCHEDULER_POLL_INTERVAL_SECONDS: int = int(
        os.getenv("SCHEDULER_POLL_INTERVAL_SECONDS", 3600))  # hourly re-check

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()


def build_database_url(config: Settings) -> str:
    if config.DATABASE_URL:
        return config.DATABASE_URL

    url = (
        f"postgresql+psycopg2://{config.DB_USER}:{config.DB_PASS}"
        f"@{config.DB_HOST}:{config.DB_PORT}/{config.DB_NAME}"
    )
    if config.DB_SSLMODE:
        url += f"?sslmode={config.DB_SSLMODE}"
    return url


DATABASE_URL = build_database_url(settings)
