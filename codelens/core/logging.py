"""Logging configuration."""
import logging
import sys
from pathlib import Path
from typing import Optional


_initialized = False


def _parse_level(level: str) -> int:
    """Map a level name to a logging constant, defaulting to INFO."""
    return getattr(logging, str(level).upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``codelens`` logger once and return it.

    Module loggers (``logging.getLogger(__name__)``) propagate here.
    """
    global _initialized

    root = logging.getLogger("codelens")
    root.setLevel(_parse_level(level))

    if not _initialized:
        root.handlers.clear()
        root.propagate = False

        formatter = logging.Formatter(fmt)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # Reduce noise from httpx and the telegram library
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("telegram").setLevel(logging.WARNING)

        _initialized = True

    return root
