
import logging
import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; ledger/.env remains a fallback for embedded checkouts.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_bool_env(*names: str, default: bool) -> bool:
    """Parses the first non-empty env var in `names` as a boolean flag."""
    raw = _first_non_empty_env(*names, default="1" if default else "0")
    return raw.strip().lower() in ("1", "true", "yes", "on")


_DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class BaseConfig:

    # Engine log level. LOG_LEVEL is accepted as a shared fallback.
    LOG_LEVEL: str = _first_non_empty_env(
        "LEDGER_LOG_LEVEL",
        "LOG_LEVEL",
        default="INFO",
    ).upper()

    LOG_FORMAT: str = _first_non_empty_env(
        "LEDGER_LOG_FORMAT",
        default=_DEFAULT_LOG_FORMAT,
    )

    # When false, configure_engine() leaves handlers to the host application
    # and only sets the level.
    LOG_TO_STDERR: bool = _parse_bool_env("LEDGER_LOG_TO_STDERR", default=True)


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    LOG_LEVEL: str = _first_non_empty_env(
        "LEDGER_LOG_LEVEL",
        "LOG_LEVEL",
        default="DEBUG",
    ).upper()


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    LOG_LEVEL: str = "WARNING"
    LOG_TO_STDERR: bool = False


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False


def validate_config(config: type[BaseConfig]) -> None:
    """
    Fail-fast guard for configuration.

    Called by configure_engine() before anything is applied:

        config_class = config_by_name[config_name]
        validate_config(config_class)   # raises ValueError if misconfigured

    Raises ValueError if LOG_LEVEL is not a standard logging level name.
    This prevents the engine from silently logging at an unexpected level.
    """
    if not isinstance(logging.getLevelName(config.LOG_LEVEL), int):
        raise ValueError(
            f"LEDGER_LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL; "
            f"got {config.LOG_LEVEL!r}."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by configure_engine():
#   from ledger.config import config_by_name
#   config_class = config_by_name[config_name]
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Convenience alias: resolves the active config class from LEDGER_ENV.
# Defaults to development if the variable is not set.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("LEDGER_ENV", "development"),
    DevelopmentConfig,
)
