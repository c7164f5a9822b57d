"""
Logging setup shared by the store, the sync layer and the CLI.
Console output goes through rich; a plain-text copy can go to the log directory.
"""

import logging
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler

from tsheet.config import get_log_dir, get_log_level

LOGGER_PREFIX = "tsheet"


class ComponentFormatter(logging.Formatter):
    """Plain formatter tagging every line with the component name"""

    def __init__(self, component: str):
        self.component = component
        super().__init__(
            fmt='[%(asctime)s] [%(component)s] [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record):
        record.component = self.component
        return super().format(record)


def setup_logging(component: str, level: str = None, log_to_file: bool = False) -> logging.Logger:
    """Configure the ``tsheet.<component>`` logger.

    Args:
        component: Component name (e.g. 'STORE', 'SYNC', 'CLI')
        level: Log level name; defaults to ``$TSHEET_LOG_LEVEL`` or WARNING
        log_to_file: Also write to a timestamped file in the log directory

    Returns:
        The configured logger. Calling again for the same component returns
        the existing logger without adding handlers twice.
    """
    logger = logging.getLogger(f"{LOGGER_PREFIX}.{component.lower()}")

    if logger.handlers:
        if log_to_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
            _add_file_handler(logger, component)
        return logger

    logger.setLevel(getattr(logging, (level or get_log_level()).upper(), logging.WARNING))
    logger.propagate = False

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    console_handler.setFormatter(logging.Formatter(f"[{component.upper()}] %(message)s"))
    logger.addHandler(console_handler)

    if log_to_file:
        _add_file_handler(logger, component)

    return logger


def _add_file_handler(logger: logging.Logger, component: str) -> None:
    try:
        log_dir = get_log_dir()
        log_dir.mkdir(exist_ok=True)
        log_file = log_dir / f"tsheet_{component.lower()}_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(ComponentFormatter(component.upper()))
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not set up file logging: {e}")


def get_logger(component: str) -> logging.Logger:
    existing = logging.getLogger(f"{LOGGER_PREFIX}.{component.lower()}")
    if existing.handlers:
        return existing
    return setup_logging(component)


def get_store_logger() -> logging.Logger:
    return get_logger("STORE")


def get_sync_logger() -> logging.Logger:
    return get_logger("SYNC")


def get_cli_logger() -> logging.Logger:
    return get_logger("CLI")


def set_log_level(level: str):
    """Set the level on every tsheet logger and its handlers"""
    level_obj = getattr(logging, level.upper(), logging.INFO)

    for name in list(logging.root.manager.loggerDict):
        if name.startswith(f"{LOGGER_PREFIX}."):
            logger = logging.getLogger(name)
            logger.setLevel(level_obj)
            for handler in logger.handlers:
                handler.setLevel(level_obj)


def enable_debug_logging():
    set_log_level("DEBUG")


def mask_token(token: str) -> str:
    """Shorten a bearer token for log output"""
    if not token:
        return "(none)"
    return f"{token[:4]}... (length={len(token)})"
