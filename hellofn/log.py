"""Logging helpers."""
import logging
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def parse_level(level: str) -> int:
    """Translate a string log level into a logging constant."""
    value = getattr(logging, level.upper(), None)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Configure the root logger for the CLI and the server."""
    logging.basicConfig(level=parse_level(level), format=fmt or LOG_FORMAT)
