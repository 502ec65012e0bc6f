import logging
import os
from typing import Iterator, Optional


_FORMAT = "%(asctime)s %(levelname)s [%(camera)s marker=%(marker)s] %(message)s"


class OverlayContextFilter(logging.Filter):
    """Stamps ``camera`` and ``marker`` (the tracked target id) on every record."""

    def __init__(self, camera_name: str, target_id: Optional[int] = None):
        super().__init__()
        self.camera_name = camera_name
        self.target_id = target_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera = self.camera_name
        record.marker = "-" if self.target_id is None else self.target_id
        return True


def _context_filters(logger: logging.Logger) -> Iterator[OverlayContextFilter]:
    for handler in logger.handlers:
        for f in handler.filters:
            if isinstance(f, OverlayContextFilter):
                yield f


def _attach(logger: logging.Logger, handler: logging.Handler, camera_name: str) -> logging.Handler:
    current = next(_context_filters(logger), None)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(OverlayContextFilter(camera_name, current.target_id if current else None))
    logger.addHandler(handler)
    return handler


def setup_logger(camera_name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"aruco_trace.{camera_name}")
    logger.setLevel(level)

    if not logger.handlers:
        _attach(logger, logging.StreamHandler(), camera_name)

    return logger


def add_file_handler(logger: logging.Logger, camera_name: str, log_path: str) -> logging.Handler:
    """Attach a log file to ``logger``; a path that is already attached is reused."""
    target = os.path.abspath(log_path)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return handler
    return _attach(logger, logging.FileHandler(target), camera_name)


def set_log_target(logger: logging.Logger, target_id: Optional[int]) -> None:
    for f in _context_filters(logger):
        f.target_id = target_id
