# logger.py
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "counter_sale"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_CONFIG = {
    "level": "INFO",
    "file": "logs/comptoir.log",
    "max_size": 1048576,  # 1MB
    "backup_count": 3
}


def resolve_level(name) -> int:
    """Level constant for a name such as "debug"; unknown names fall back to INFO."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(log_config):
    path = Path(log_config["file"])
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=log_config["max_size"],
        backupCount=log_config["backup_count"],
        encoding="utf-8",
    )


def setup_logger(config=None):
    """
    Attach console and rotating file handlers to the counter_sale logger.

    Module loggers (counter_sale.catalog, counter_sale.session, ...) only
    propagate; handlers live on the parent. A log file that cannot be
    opened leaves console logging in place.
    """
    log_config = {**DEFAULT_CONFIG, **((config or {}).get("logging") or {})}

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(log_config["level"]))
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_config.get("file"):
        try:
            file_handler = _file_handler(log_config)
        except OSError as e:
            logger.error(f"Failed to set up file logging: {e}")
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
    return logger


def configure_logger(config):
    """Drop and close the current handlers, then set up from config."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    return setup_logger(config)
