import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    default=["http://localhost:5173", "http://localhost:8080"],
)

# Slots are laid out on this grid in the tenant's local wall-clock time.
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))

BOOKING_QUEUE_INTERVAL_SECONDS = float(os.getenv("BOOKING_QUEUE_INTERVAL_SECONDS", "5"))
BOOKING_QUEUE_MAX_ATTEMPTS = int(os.getenv("BOOKING_QUEUE_MAX_ATTEMPTS", "3"))

AUTO_COMPLETE_AFTER_HOURS = int(os.getenv("AUTO_COMPLETE_AFTER_HOURS", "24"))
CRON_SECRET = os.getenv("CRON_SECRET", "change-me")

AGENDA_API_BASE_URL = os.getenv("AGENDA_API_BASE_URL", "http://localhost:8000")
AGENDA_API_TIMEOUT_SECONDS = float(os.getenv("AGENDA_API_TIMEOUT_SECONDS", "10"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and CRON_SECRET == "change-me":
        raise RuntimeError("CRON_SECRET must be set in production.")
    if SLOT_INTERVAL_MINUTES <= 0 or 60 % SLOT_INTERVAL_MINUTES != 0:
        raise RuntimeError("SLOT_INTERVAL_MINUTES must evenly divide an hour.")
    if BOOKING_QUEUE_MAX_ATTEMPTS < 1:
        raise RuntimeError("BOOKING_QUEUE_MAX_ATTEMPTS must be at least 1.")
