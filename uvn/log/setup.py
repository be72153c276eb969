import logging
import sys

from uvn import settings


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw subprocess logs."""

    DETAILED_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'

    def __init__(self, detailed: bool = False):
        super().__init__(self.DETAILED_FORMAT if detailed else '%(message)s')

    def format(self, record):
        # The 'proc.' prefix is used by the pipe readers in process_utils.py.
        # If the log is from a subprocess, just return the raw message.
        if record.name.startswith('proc.'):
            return record.getMessage()
        return super().format(record)


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    This sets up the console handler on stderr and, when UVN_LOG_FILE is set,
    a file handler, clearing any previously configured handlers to prevent duplication.

    Standard output is left alone: it belongs to the wrapped command.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    # Plain messages on the console at every level; timestamps only go to the file.
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler (conditional) ---
    if settings.LOG_FILE_PATH:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE_PATH, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(MainFormatter(detailed=True))
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Failed to open log file '{settings.LOG_FILE_PATH}': {e}. Logging to file will be disabled.")
