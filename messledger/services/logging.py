"""Root logger setup shared by the API server and the report CLI.

Both entry points log to stdout and to a file. The level comes from
LOG_LEVEL unless the caller passes one (settings.log_level).
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that are chatty at INFO/DEBUG; SQL echo is DATABASE_ECHO's job
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


def get_log_level(level_name: str | None = None) -> int:
    """Level constant for a name such as "debug"; unknown names give INFO."""
    name = (level_name or os.getenv("LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelNamesMapping().get(name)
    return level if level is not None else logging.INFO


def setup_server_logging(log_file: str = "logs/server.log", level_name: str | None = None) -> None:
    """Replace root handlers with a stdout handler and a file handler.

    Args:
        log_file: Log file path; missing parent directories are created
        level_name: Level override (default: LOG_LEVEL env var)
    """
    level = get_log_level(level_name)
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout), logging.FileHandler(path)]

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
