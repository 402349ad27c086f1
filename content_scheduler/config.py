import os
from dotenv import load_dotenv

load_dotenv()


def _csv(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings:
    ENV: str = os.getenv("ENV", "development")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./content_scheduler.db")

    # Bearer secret the external cron sends to /cron/publish-scheduled
    CRON_SECRET: str | None = os.getenv("CRON_SECRET")

    CORS_ORIGINS: list[str] = _csv(
        os.getenv("CORS_ORIGINS"),
        ["http://localhost:3000", "http://127.0.0.1:3000"],
    )

    SESSION_DAYS: int = int(os.getenv("SESSION_DAYS", 7))
    PUBLISH_BATCH_SIZE: int = int(os.getenv("PUBLISH_BATCH_SIZE", 10))
    MAX_PUBLISH_RETRIES: int = int(os.getenv("MAX_PUBLISH_RETRIES", 3))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
