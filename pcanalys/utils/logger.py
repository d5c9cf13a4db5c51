import logging
import os
import sys
from logging.handlers import RotatingFileHandler

APP_LOGGER_NAME = "pcanalys"


def setup_logger(name=APP_LOGGER_NAME, log_file="api.log", level=None):
    """
    Sets up the application logger with console and rotating file handlers.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = os.getenv("PCANALYS_LOG_LEVEL", "INFO").upper()
    logger.setLevel(level)

    # Prevent adding handlers multiple times
    if logger.hasHandlers():
        return logger

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File Handler (Rotating)
    try:
        log_dir = os.getenv("PCANALYS_LOG_DIR", os.path.join(os.path.expanduser("~"), ".pcanalys", "logs"))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, log_file), maxBytes=5*1024*1024, backupCount=3
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Failed to setup file logging: {e}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Returns a child of the application logger so module loggers share its handlers.
    """
    if name.startswith(APP_LOGGER_NAME + "."):
        name = name[len(APP_LOGGER_NAME) + 1:]
    return log.getChild(name)


log = setup_logger()
