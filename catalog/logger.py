# catalog/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_configured = False


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def setup_logging():
    global _configured
    if _configured:
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)
    log_to_stdout = _env_flag("LOG_TO_STDOUT", "true")
    log_to_file = _env_flag("LOG_TO_FILE", "false")
    log_file = os.path.expanduser(
        os.getenv("LOG_FILE", "~/.shopping_catalog/shopping_catalog.log")
    )
    log_max_bytes = int(os.getenv("LOG_MAX_BYTES", str(1024 * 1024)))
    log_backups = int(os.getenv("LOG_BACKUPS", "2"))

    root = logging.getLogger()
    root.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    # Avoid duplicate handlers
    if not root.handlers:
        if log_to_stdout:
            ch = logging.StreamHandler(sys.stdout)
            ch.setLevel(level)
            ch.setFormatter(formatter)
            root.addHandler(ch)

        if log_to_file:
            try:
                os.makedirs(os.path.dirname(log_file), exist_ok=True)
                fh = RotatingFileHandler(
                    log_file,
                    maxBytes=log_max_bytes,
                    backupCount=log_backups,
                    encoding="utf-8",
                )
                fh.setLevel(level)
                fh.setFormatter(formatter)
                root.addHandler(fh)
            except OSError as e:
                root.warning("Failed to initialize file logging at %s: %s", log_file, e)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
