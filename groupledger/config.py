import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; groupledger/.env remains a local override.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


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


class BaseConfig:

    # Level for the "groupledger" logger. LOG_LEVEL is accepted as an alias.
    LOG_LEVEL: str = _first_non_empty_env(
        "LEDGER_LOG_LEVEL",
        "LOG_LEVEL",
        default="INFO",
    ).upper()

    LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # When true, compute_balances() logs a warning for every expense whose
    # splits do not add up to its total. Never raises.
    VERIFY_SPLIT_SUMS: bool = _parse_bool_env("LEDGER_VERIFY_SPLIT_SUMS", default=True)


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
    VERIFY_SPLIT_SUMS: bool = True


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False


def validate_production_config(config: type[BaseConfig]) -> None:
    """
    Fail-fast guard for production configuration.

    Called by the ledger factory right after the production config class is
    selected:

        config_class = config_by_name["production"]
        validate_production_config(config_class)   # raises ValueError

    Raises ValueError if the log level is not one the logging module knows,
    or if debug-level logging is left on (it writes a line, with the expense
    or settlement id, for every skipped record).
    """
    if config.LOG_LEVEL not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"LEDGER_LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}; "
            f"got {config.LOG_LEVEL!r}."
        )
    if config.LOG_LEVEL == "DEBUG":
        raise ValueError(
            "LEDGER_LOG_LEVEL=DEBUG is not allowed in production. "
            "Use INFO or higher."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the ledger factory:
#   from groupledger.config import config_by_name
#   config_class = config_by_name[ledger_env]
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Convenience alias — resolves the active config class from LEDGER_ENV.
# Defaults to development if the variable is not set.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("LEDGER_ENV", "development"),
    DevelopmentConfig,
)
