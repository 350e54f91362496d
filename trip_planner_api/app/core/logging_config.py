"""
Logging setup for the Trip Planner API.

``setup_logging`` attaches a console handler (and a file handler when
``LOG_FILE`` is set) to the root logger once per process.  The cost
engine and the recompute dispatcher log every allocation they write,
which is noisy on a busy trip, so their loggers get their own level
(``COST_ENGINE_LOG_LEVEL``).  That level is applied on every call,
including calls made after handlers already exist.
"""

import logging
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ENGINE_LOGGERS = (
    "trip_planner_api.app.services.cost_service",
    "trip_planner_api.app.services.recompute",
)


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    return getattr(logging, name.upper(), default)


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    engine_level: Optional[str] = None,
) -> None:
    """Configure the root logger and the cost engine loggers.

    Parameters
    ----------
    level : str
        Root level name (e.g. ``"DEBUG"``, ``"INFO"``), case insensitive.
        Unknown names fall back to ``INFO``.
    logfile : Optional[str]
        File to log to in addition to the console.  Missing parent
        directories are created.
    engine_level : Optional[str]
        Level for the cost engine and dispatcher loggers.  When omitted
        they follow the root level.
    """
    root_level = _level(level, logging.INFO)
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(_level(engine_level, logging.NOTSET))

    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(root_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
