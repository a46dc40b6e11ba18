import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./petavet.db")

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "auth-token")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(60 * 60 * 24 * 7)))
SESSION_COOKIE_SECURE = _get_bool(os.getenv("SESSION_COOKIE_SECURE"), default=APP_ENV.lower() == "production")

# Daily booking template, inclusive on both ends.
CLINIC_FIRST_SLOT = os.getenv("CLINIC_FIRST_SLOT", "09:00")
CLINIC_LAST_SLOT = os.getenv("CLINIC_LAST_SLOT", "17:00")
SLOT_INCREMENT_MINUTES = int(os.getenv("SLOT_INCREMENT_MINUTES", "30"))
DEFAULT_APPOINTMENT_DURATION_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_DURATION_MINUTES", "30"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_INCREMENT_MINUTES <= 0:
        raise RuntimeError("SLOT_INCREMENT_MINUTES must be a positive number of minutes.")
