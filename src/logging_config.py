import logging
import sys
import os
from logging import Handler
from typing import Optional

from tqdm import tqdm

LOGGER_NAME = "messages_editor"


class TqdmLoggingHandler(Handler):
    """
    Console handler for the editor.

    Records go through tqdm.write so they land above the completion bar drawn
    by ProgressStatusSink during an interactive edit instead of breaking it.
    """
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)

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
    Configure the "messages_editor" logger.

    Catalog, merge, session and CLI modules log through its children, so one
    call covers the whole editor. Calling it again replaces the handlers.

    Args:
        log_level_str: Level name such as 'INFO' or 'DEBUG'. Unknown names fall back to INFO.
        log_file_path: Log file for the editor session, or None for no file.
        log_to_console: Whether records also go to stderr.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))

    if logger.hasHandlers():
        logger.handlers.clear()
    # Keep editor records out of the root logger.
    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = TqdmLoggingHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
