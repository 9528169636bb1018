"""Configuration management for the kubeprep application."""
import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def resolve_log_level(name: str, default: str = "INFO") -> str:
    """Return the upper-cased level name, or the default if it is not a logging level."""
    level = (name or "").strip().upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    return default


class Config:
    """Process-wide settings with sensible defaults."""

    # Prefix for every environment variable read by kubeprep
    ENV_PREFIX: str = "KUBEPREP_"

    # Installer configuration file (overrides the default search paths)
    CONFIG_PATH: str = os.getenv("KUBEPREP_CONFIG", "")

    # Logging
    LOG_LEVEL: str = resolve_log_level(os.getenv("KUBEPREP_LOG_LEVEL", "INFO"))
    LOG_FORMAT: str = os.getenv(
        "KUBEPREP_LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    LOG_DATEFMT: str = "%Y-%m-%d %H:%M:%S"

    # Third-party loggers kept at WARNING unless running verbose
    QUIET_LOGGERS: tuple = ("urllib3", "kubernetes")
