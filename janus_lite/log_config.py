"""Logging configuration for Janus Lite.

All modules log through loguru with a component name bound
(``get_logger("graph.kuzu")``). Three sinks are installed on import:

- stderr, colorized, filtered per component
- ``janus_<date>.log`` at DEBUG (10 MB rotation, 7 days retention, zipped)
- ``latest.log`` at TRACE, kept for the current run only

Logs go to ~/.janus_lite/logs unless JANUS_LITE_LOG_DIR says otherwise.

Console levels:
- JANUS_LITE_LOG_LEVEL: everything not overridden below (default: INFO)
- JANUS_LITE_LOG_RESOLVER: composition resolver
- JANUS_LITE_LOG_INDEX: file index reconciliation
- JANUS_LITE_LOG_GRAPH: graph backends and graph persistence (``graph.*``)
"""

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from time import perf_counter

from loguru import logger

_COMPONENT_ENV = {
    "resolver": "JANUS_LITE_LOG_RESOLVER",
    "index": "JANUS_LITE_LOG_INDEX",
    "graph": "JANUS_LITE_LOG_GRAPH",
}

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | {message}"


def _level_no(name: str | None) -> int | None:
    """Map a level name to its severity number, None when unset or unknown."""
    if not name:
        return None
    try:
        return logger.level(name.strip().upper()).no
    except ValueError:
        return None


_threshold = _level_no(os.getenv("JANUS_LITE_LOG_LEVEL", "INFO")) or logger.level("INFO").no

_component_thresholds: dict[str, int] = {}
for _component, _env in _COMPONENT_ENV.items():
    _level = _level_no(os.getenv(_env))
    if _level is not None:
        _component_thresholds[_component] = _level


def _console_filter(record) -> bool:
    """Pass a record that clears its component's threshold.

    The component is the bound name up to the first dot, so "graph.kuzu"
    follows JANUS_LITE_LOG_GRAPH.
    """
    component = record["extra"].get("name", "").split(".", 1)[0]
    return record["level"].no >= _component_thresholds.get(component, _threshold)


def _install_handlers(log_dir: Path) -> list[int]:
    logger.remove()
    log_dir.mkdir(parents=True, exist_ok=True)
    return [
        logger.add(sys.stderr, level=0, filter=_console_filter, format=_CONSOLE_FORMAT, colorize=True),
        logger.add(
            log_dir / "janus_{time:YYYY-MM-DD}.log",
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            enqueue=True,
        ),
        logger.add(log_dir / "latest.log", level="TRACE", format=_FILE_FORMAT, rotation="5 MB", retention=1),
    ]


LOG_DIR = Path(os.getenv("JANUS_LITE_LOG_DIR") or Path.home() / ".janus_lite" / "logs")

# Records from the bare logger still need a name for the formats above
logger.configure(extra={"name": "janus"})
_handler_ids = _install_handlers(LOG_DIR)


def get_logger(name: str):
    """Return the shared logger with a component name bound."""
    return logger.bind(name=name)


@contextmanager
def log_timing(operation: str, log_instance=None, level: str = "debug"):
    """Log how long the with-block took.

    Args:
        operation: Label for the timed work
        log_instance: Bound logger to report through (module logger if None)
        level: Level name for the timing record

    Yields:
        dict whose ``elapsed_ms`` is filled in when the block exits, even on error
    """
    timing = {"elapsed_ms": 0.0}
    start = perf_counter()
    try:
        yield timing
    finally:
        timing["elapsed_ms"] = (perf_counter() - start) * 1000
        (log_instance or logger).log(level.upper(), f"{operation} took {timing['elapsed_ms']:.1f}ms")


__all__ = ["LOG_DIR", "logger", "get_logger", "log_timing"]
