import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y", "on"}


class BaseConfig:
    OFFLINE_MODE = _env_bool("OFFLINE_MODE", "false")
    OFFLINE_ADMIN_EMAIL = os.getenv("OFFLINE_ADMIN_EMAIL", "devadmin@example.com")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    LOG_JSON = _env_bool("LOG_JSON", "false")

    # action queue engine
    STALE_ACTION_MINUTES = int(os.getenv("STALE_ACTION_MINUTES", "5"))
    STALE_CHECK_INTERVAL_SECONDS = int(os.getenv("STALE_CHECK_INTERVAL_SECONDS", "120"))
    RETRY_DELAY_MINUTES = int(os.getenv("RETRY_DELAY_MINUTES", "5"))
    MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
    CLAIM_ATTEMPTS = int(os.getenv("CLAIM_ATTEMPTS", "3"))
    CANDIDATE_BATCH = int(os.getenv("CANDIDATE_BATCH", "25"))

    DAILY_ACTION_LIMIT = int(os.getenv("DAILY_ACTION_LIMIT", "50"))
    DEFAULT_CAMPAIGN_DAILY_LIMIT = int(os.getenv("DEFAULT_CAMPAIGN_DAILY_LIMIT", "50"))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:8000").split(",")
        if origin.strip()
    ]

    TORTOISE_ORM: dict = {}
