import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import settings

# Third-party loggers that are too chatty at INFO.
QUIET_LOGGERS = ("urllib3", "requests")


def setup_logger(
    name: Optional[str] = None,
    log_level: int | str = settings.LOG_LEVEL,
    log_file: Optional[Path] = settings.LOG_FILE,
) -> logging.Logger:
    """
    Configures console output plus, when log_file is set, a rotating log file.
    Called once by the entry script; library modules only use logging.getLogger(__name__).
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Prevent adding handlers multiple times if logger is already set up
    if logger.handlers:
        return logger

    # Console stays minimal; the file keeps timestamps and module names.
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"  # 5 MB
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
