import logging
import os

DEFAULT_BICEP_PATH = "bicep"
DEFAULT_CONNECT_TIMEOUT = 10.0
DISTRIBUTION_NAME = "bicep-facts"


def get_bicep_path() -> str:
    return os.getenv("BICEP_PATH", DEFAULT_BICEP_PATH)


def get_connect_timeout() -> float:
    raw = os.getenv("BICEP_FACTS_CONNECT_TIMEOUT")
    if not raw:
        return DEFAULT_CONNECT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"BICEP_FACTS_CONNECT_TIMEOUT must be a number, got '{raw}'") from None
    if value <= 0:
        raise ValueError("BICEP_FACTS_CONNECT_TIMEOUT must be positive")
    return value


def get_log_level() -> int:
    name = os.getenv("BICEP_FACTS_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{name}'")
    return level


def get_generator_name() -> str:
    """Return ``<distribution>@<version>`` for the installed package."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return f"{DISTRIBUTION_NAME}@{version(DISTRIBUTION_NAME)}"
    except PackageNotFoundError:
        return f"{DISTRIBUTION_NAME}@0.0.0"
