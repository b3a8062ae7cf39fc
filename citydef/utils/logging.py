import os
import logging
from logging.handlers import RotatingFileHandler
import bittensor as bt

EVENTS_LEVEL_NUM = 38
EVENTS_LOGGER_NAME = "citydef.events"
DEFAULT_LOG_BACKUP_COUNT = 10

logging.getLogger(EVENTS_LOGGER_NAME).addHandler(logging.NullHandler())


def setup_events_logger(full_path, events_retention_size):
    """Route town lifecycle events (built, replaced, removed) to ``events.log``."""
    logging.addLevelName(EVENTS_LEVEL_NUM, "EVENT")

    logger = logging.getLogger(EVENTS_LOGGER_NAME)
    logger.setLevel(EVENTS_LEVEL_NUM)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    os.makedirs(full_path, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(full_path, "events.log"),
        maxBytes=events_retention_size,
        backupCount=DEFAULT_LOG_BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(EVENTS_LEVEL_NUM)
    logger.addHandler(file_handler)

    return logger


def log_event(message: str) -> None:
    """Emit a town lifecycle event; a no-op until :func:`setup_events_logger` runs."""
    logging.getLogger(EVENTS_LOGGER_NAME).log(EVENTS_LEVEL_NUM, message)


class ColoredLogger:
    """ANSI-colored wrappers around bt.logging for human-facing build summaries.

    Colors are dropped when the ``NO_COLOR`` environment variable is set, so
    summaries stay readable when piped into files or CI logs.
    """

    BLUE = "blue"
    YELLOW = "yellow"
    RED = "red"
    GREEN = "green"
    GRAY = "gray"

    _COLORS = {
        "blue": "\033[94m",
        "yellow": "\033[93m",
        "red": "\033[91m",
        "green": "\033[92m",
        "gray": "\033[90m",
    }
    _RESET = "\033[0m"

    @staticmethod
    def _colored_msg(message: str, color: str) -> str:
        code = ColoredLogger._COLORS.get(color)
        if code is None or os.getenv("NO_COLOR"):
            return message
        return f"{code}{message}{ColoredLogger._RESET}"

    @staticmethod
    def info(message: str, color: str = BLUE) -> None:
        bt.logging.info(ColoredLogger._colored_msg(message, color))

    @staticmethod
    def warning(message: str, color: str = YELLOW) -> None:
        bt.logging.warning(ColoredLogger._colored_msg(message, color))

    @staticmethod
    def error(message: str, color: str = RED) -> None:
        bt.logging.error(ColoredLogger._colored_msg(message, color))

    @staticmethod
    def success(message: str, color: str = GREEN) -> None:
        bt.logging.success(ColoredLogger._colored_msg(message, color))
