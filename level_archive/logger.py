import logging
import sys
from pathlib import Path

import appdirs

from level_archive.constants import APP_AUTHOR, APP_NAME

LOGGER_NAME = "LevelArchive"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def get_log_path(log_file_name: str) -> Path:
    """Path of the log file inside the user log directory."""
    return Path(appdirs.user_log_dir(APP_NAME, APP_AUTHOR)) / log_file_name


def setup_logger(log_file_name="level_archive.log"):
    """
    Setups the initial logger.
    param: log_file_name: filename to be used for the logfile.
    return: logger instance created.
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Check if the logger has already been configured
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # Create formatter and add it to handlers
        log_format = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(log_format)
        logger.addHandler(console_handler)

        log_file_path = get_log_path(log_file_name)
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Logging to console only, cannot open {log_file_path}: {e}")
        else:
            file_handler.setFormatter(log_format)
            logger.addHandler(file_handler)

        # Prevent propagation to avoid duplicate logs
        logger.propagate = False

    return logger


def set_log_level(level_name: str):
    """
    Change the level of every handler of the application logger.
    @param: level_name: name of a logging level (DEBUG, INFO...).
    """
    logger = setup_logger()
    level = logging.getLevelName(level_name.upper())
    for handler in logger.handlers:
        handler.setLevel(level)


# Usage example
if __name__ == "__main__":
    logger = setup_logger()
    logger.info("This is a test log message")
    logger.info("This is a test logger.info message with an argument: %s", "test arg")
