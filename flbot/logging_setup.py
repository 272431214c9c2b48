"""Logging for the bot and the CLI.

Every log line carries the trace id of the command being handled, so one
ACTRECORD can be followed from attachment download to the last stored row.
"""

import contextvars
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(trace_id)s] %(name)s: %(message)s"

# Third-party loggers that are only interesting when something breaks.
QUIET_LOGGERS = ("discord", "discord.gateway", "discord.http", "aiohttp", "aiohttp.access")

_trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="-")


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_var.get("-")  # type: ignore[attr-defined]
        return True


def set_trace_id(trace_id: str) -> contextvars.Token:
    return _trace_id_var.set(trace_id)


def reset_trace_id(token: contextvars.Token) -> None:
    try:
        _trace_id_var.reset(token)
    except ValueError:
        # token belongs to another context (e.g. a worker thread)
        pass


def _level(name: str, default: int) -> int:
    value = getattr(logging, (name or "").upper(), None)
    return value if isinstance(value, int) else default


def _file_handler(settings: Settings, fmt: logging.Formatter, flt: logging.Filter) -> Optional[logging.Handler]:
    try:
        fh = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backups,
            encoding="utf-8",
        )
    except OSError:
        return None
    fh.setLevel(_level(settings.log_file_level, logging.DEBUG))
    fh.setFormatter(fmt)
    fh.addFilter(flt)
    return fh


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Console logging on the root logger, rotating file logging for 'flbot.*'.

    Levels, file path and rotation come from Settings (LOG_LEVEL,
    LOG_FILE_LEVEL, LOG_FILE, LOG_MAX_BYTES, LOG_BACKUPS). Calling it again
    is a no-op.
    """
    root = logging.getLogger()
    if getattr(root, "_flbot_logging_configured", False):
        return
    settings = settings or Settings.from_env()

    fmt = logging.Formatter(LOG_FORMAT)
    flt = TraceIdFilter()
    console_level = _level(settings.log_level, logging.INFO)

    root.setLevel(console_level)
    sh = logging.StreamHandler()
    sh.setLevel(console_level)
    sh.setFormatter(fmt)
    sh.addFilter(flt)
    root.addHandler(sh)

    app_logger = logging.getLogger("flbot")
    app_logger.setLevel(logging.DEBUG)
    fh = _file_handler(settings, fmt, flt)
    if fh is None:
        app_logger.warning("File logging disabled: cannot open %s", settings.log_file)
    else:
        app_logger.addHandler(fh)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root._flbot_logging_configured = True  # type: ignore[attr-defined]
