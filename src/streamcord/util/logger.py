"""
Logging for Streamcord.

Every module asks for ``get_logger("<component>")`` and receives a child of the
``streamcord`` logger. Handlers live on that parent only: a prompt_toolkit
console handler and a rotating file under ``logs/``. Library loggers that
chatter at INFO (py-cord, aiohttp) are held at ERROR and routed to the same
handlers, so their failures still end up in the session file.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

ROOT_LOGGER_NAME = "streamcord"
LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

# A log file touched this recently is the one of the process that just re-exec'd
RESTART_REUSE_WINDOW_SECONDS = 60
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5

NOISY_LOGGERS = ("discord", "aiohttp", "websockets")

LOG_FILEPATH: Path | None = None


class ColorFormatter(logging.Formatter):
    """Formatter wrapping each line in the ANSI color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LOG_COLORS.get(record.levelname)
        return f"{color}{message}{RESET_COLOR}" if color else message


class PromptToolkitHandler(logging.Handler):
    """Console handler printing through prompt_toolkit so ANSI colors survive."""

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def console_level() -> int:
    """Console threshold from ``STREAMCORD_LOG_LEVEL`` (a level name), INFO by default."""
    name = os.getenv("STREAMCORD_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_log_filepath() -> Path:
    """
    Path of the session log file, chosen once per process.

    Returns:
        Path: Today's newest log file if it was written within the reuse
        window (a ``/forcerestart`` re-exec), otherwise a new timestamped file.
    """
    global LOG_FILEPATH

    if LOG_FILEPATH is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        now = datetime.now()
        todays_logs = sorted(
            LOGS_DIR.glob(f"{now:%Y-%m-%d}*.log"),
            key=lambda path: path.stat().st_mtime,
            reverse=True,
        )
        if todays_logs and now.timestamp() - todays_logs[0].stat().st_mtime < RESTART_REUSE_WINDOW_SECONDS:
            LOG_FILEPATH = todays_logs[0]
        else:
            LOG_FILEPATH = LOGS_DIR / f"{now.strftime(DATE_FORMAT)}.log"

    return LOG_FILEPATH


def _build_handlers() -> list[logging.Handler]:
    console_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() \
        else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console_handler = PromptToolkitHandler(formatter=console_formatter)
    console_handler.setLevel(console_level())

    file_handler = RotatingFileHandler(
        get_log_filepath(),
        encoding="utf-8",
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return [console_handler, file_handler]


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    root.setLevel(logging.DEBUG)
    root.propagate = False
    handlers = _build_handlers()
    for handler in handlers:
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.ERROR)
        noisy.propagate = False
        noisy.handlers = list(handlers)
    return root


def get_logger(logger_name: str) -> logging.Logger:
    """Return the ``streamcord.<logger_name>`` logger, setting up handlers on first use."""
    _root_logger()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{logger_name}")


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` logging uncaught exceptions; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    _root_logger().critical(
        "Uncaught exception",
        exc_info=(exception_type, exception_instance, exception_traceback),
    )


def install_exception_hook() -> None:
    sys.excepthook = handle_exception
