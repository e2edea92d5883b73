# admitgroup/config/logger.py
import logging
import sys

from admitgroup.config.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_NAME = "admitgroup-stdout"


def resolve_level(level_name: str | None = None, env: str | None = None) -> int:
    """LOG_LEVEL wins; without it dev runs at DEBUG, everything else at INFO."""
    name = level_name if level_name is not None else settings.log_level
    if name:
        level = logging.getLevelName(name.upper())
        if isinstance(level, int):
            return level
        raise ValueError(f"Unknown LOG_LEVEL {name!r}")
    return logging.DEBUG if (env or settings.env) == "dev" else logging.INFO


def setup_logger(name: str = "admitgroup", level: int | None = None) -> logging.Logger:
    """
    Project logger writing to stdout. Repeated calls reuse the handler
    and only adjust the level.
    """
    log = logging.getLogger(name)
    level = resolve_level() if level is None else level
    log.setLevel(level)

    stdout = next((h for h in log.handlers if h.get_name() == _HANDLER_NAME), None)
    if stdout is None:
        stdout = logging.StreamHandler(sys.stdout)
        stdout.set_name(_HANDLER_NAME)
        stdout.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        log.addHandler(stdout)
    stdout.setLevel(level)
    return log


logger = setup_logger()
