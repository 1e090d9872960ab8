import logging
import os
import sys
from typing import Optional

LOG_FILE = "/var/log/nixos_installer.log"
FALLBACK_LOG_FILE = "/tmp/nixos_installer_debug.log"
LOG_ENV = "NIXOS_INSTALLER_DEBUG_LOG"

_FORMAT = logging.Formatter(
    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)


def _file_handler(path: str) -> logging.FileHandler:
    # the live ISO only lets root write to /var/log
    try:
        return logging.FileHandler(path)
    except PermissionError:
        return logging.FileHandler(FALLBACK_LOG_FILE)


def setup_logger(path: Optional[str] = None) -> logging.Logger:
    """
    Diagnostic logger shared by every module: DEBUG and up to a file,
    WARNING and up to stderr. Calling it twice does not duplicate handlers.
    """
    logger = logging.getLogger("nixos_installer")
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    fh = _file_handler(path or os.environ.get(LOG_ENV) or LOG_FILE)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(_FORMAT)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.WARNING)
    sh.setFormatter(_FORMAT)

    logger.addHandler(fh)
    logger.addHandler(sh)
    return logger


def set_console_level(level: int) -> None:
    """Change the stderr threshold; the file handler always keeps DEBUG."""
    for handler in log.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


def log_file_path() -> Optional[str]:
    for handler in log.handlers:
        if isinstance(handler, logging.FileHandler):
            return handler.baseFilename
    return None


log = setup_logger()
