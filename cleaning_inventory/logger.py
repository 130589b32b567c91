import logging
import sys
from logging.handlers import RotatingFileHandler
from . import settings

# Third-party chatter kept out of the inventory log
QUIET_LOGGERS = ("urllib3", "reportlab", "PIL")


def setup_logger(name: str = None, log_level: int | str = None) -> logging.Logger:
    """
    Sets up the named (or root) logger with console and rotating file output.
    Level, file name and rotation come from settings, so a `.env` can change them.
    """
    log_level = log_level or settings.LOG_LEVEL
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Only our own handlers count; a handler on the root logger does not
    if logger.handlers:
        return logger

    # Formatters
    console_format = logging.Formatter("%(message)s")  # Keep console output clean/minimal
    file_format = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # 1. Console Handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    # 2. File Handler
    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        settings.LOG_DIR / settings.LOG_FILENAME,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.debug(f"Logging to {file_handler.baseFilename} at {logging.getLevelName(logger.level)}")
    return logger
