import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; billtribe/.env remains a fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_bool_env(name: str, default: bool) -> bool:
    """Parses a boolean env var ("1", "true", "yes", "on" are truthy)."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:

    # Flask/session secret. BILLTRIBE_SECRET_KEY is accepted as an alias.
    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        "BILLTRIBE_SECRET_KEY",
        default="change-me-in-production",
    )

    JSON_SORT_KEYS: bool = False

    # Level name for app.logger ("DEBUG", "INFO", "WARNING", ...).
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO").upper()

    # Reflect the request Origin so a frontend on another local port can call
    # the API. Defaults to on for DEBUG/TESTING configs (see subclasses).
    CORS_ENABLED: bool = _parse_bool_env("CORS_ENABLED", default=False)


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG").upper()
    CORS_ENABLED: bool = _parse_bool_env("CORS_ENABLED", default=True)


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    LOG_LEVEL: str = "WARNING"
    CORS_ENABLED: bool = True


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if app.config.get("SECRET_KEY") in (None, "", "change-me-in-production"):
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )
    if app.config.get("LOG_LEVEL") not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ValueError(
            f"LOG_LEVEL {app.config.get('LOG_LEVEL')!r} is not a valid logging level."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from billtribe.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Convenience alias — resolves the active config class from FLASK_ENV.
# Defaults to development if the variable is not set.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("FLASK_ENV", "development"),
    DevelopmentConfig,
)
