import os


def get_settings_module() -> str:
    """Dotted path of the settings module picked by APP_ENV (development by default)."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "attendance_tracker.config.production"

    if env in {"test", "testing"}:
        return "attendance_tracker.config.testing"

    return "attendance_tracker.config.development"


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}
