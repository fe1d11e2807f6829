import logging
import os
import sys
from logging import Handler
from typing import Optional

from tqdm import tqdm

# Every module logs through this logger; setup_logger attaches the handlers.
LOGGER_NAME = "tx_translator"

FILE_FORMAT = '%(asctime)s - %(levelname)s - %(module)s - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(Handler):
    """
    Writes log records with tqdm.write so they appear above the module progress bar.
    """
    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
            self.flush()
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    Set up the ``tx_translator`` logger.

    Calling it again replaces the handlers of the previous call, so the level
    and targets always reflect the latest configuration.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
            Unknown names fall back to INFO.
        log_file_path: The log file, or an empty value for no file logging.
            Missing parent directories are created.
        log_to_console: Whether to log to stderr through tqdm.

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = TqdmLoggingHandler()
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    return logger
