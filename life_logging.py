"""Logging setup shared by the life-script CLI and tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOGGER = "lifescript"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def _open_log_file(log_file: Union[str, Path]) -> logging.Handler:
    """FileHandler for ``log_file``, creating its directory; raises OSError."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(
    logger_name: Optional[str] = None,
    *,
    level: int = logging.INFO,
    log_file: Union[str, Path, None] = None,
    include_stream: bool = True,
) -> logging.Logger:
    """
    Route every ``lifescript.*`` logger through the root handlers.

    A log file that cannot be opened is reported on the returned logger and
    skipped; playback never fails because of logging.
    """
    handlers: list[logging.Handler] = []
    failure: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(_open_log_file(log_file))
        except OSError as exc:
            failure = exc
    if include_stream:
        handlers.append(logging.StreamHandler())
    if not handlers:
        handlers.append(logging.NullHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    logger = logging.getLogger(logger_name or DEFAULT_LOGGER)
    logger.setLevel(level)
    if failure is not None:
        logger.warning("Cannot open log file %s: %s", log_file, failure)
    return logger


__all__ = ["DEFAULT_LOGGER", "configure_logging"]
