"""
Logging configuration for Face Attendance.

Provides structured logging with device ID context.
"""

import logging
import sys


class DeviceContextFilter(logging.Filter):
    """Add scanning device context to log records."""

    def __init__(self, device_id: str):
        super().__init__()
        self.device_id = device_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.device_id = self.device_id
        return True


def setup_logging(device_id: str, debug: bool = False) -> None:
    """
    Configure logging for the service.

    Args:
        device_id: Device identifier for log context
        debug: Enable debug level logging
    """
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '[%(levelname)s] [device=%(device_id)s] %(message)s'
    ))
    console_handler.addFilter(DeviceContextFilter(device_id))

    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
