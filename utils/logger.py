# Console logging with a colour per level.
import logging
import os


class CustomFormatter(logging.Formatter):
    """
    A custom formatter for logging messages with different log levels.

    Usage:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter())
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format_str = "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"

    FORMATS = {
        logging.DEBUG: dark_grey + format_str + reset,
        logging.INFO: grey + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.format_str)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


ROOT_LOGGER_NAME = "story_forge"


def setup_logging(level: str = None) -> logging.Logger:
    """Attach the colour handler to the application logger once."""
    log = logging.getLogger(ROOT_LOGGER_NAME)
    log.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    if not any(isinstance(h.formatter, CustomFormatter) for h in log.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(CustomFormatter())
        log.addHandler(ch)
    return log


def get_logger(name: str) -> logging.Logger:
    """Child of the application logger, e.g. ``story_forge.api.chats``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
