"""
Logging setup for the session controller.

Console output always; optionally ships records to the centralized logging
service over a socket handler when LOGGING_HOST is configured.
"""
import logging
import logging.handlers
from typing import Optional

from session_controller.config import Settings, settings as default_settings


def setup_logger(service_name: str, config: Optional[Settings] = None) -> logging.Logger:
    """
    Setup the service logger.

    Args:
        service_name: Name attached to every record as ``service``
        config: Settings to read levels and the log host from

    Returns:
        Configured logger
    """
    config = config or default_settings

    logger = logging.getLogger(service_name)
    logger.setLevel(config.LOG_LEVEL.upper())

    # Remove existing handlers
    logger.handlers = []

    # Add service name to all log records
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.service = service_name
        return record

    logging.setLogRecordFactory(record_factory)

    if config.LOGGING_HOST:
        socket_handler = logging.handlers.SocketHandler(config.LOGGING_HOST, config.LOGGING_PORT)
        logger.addHandler(socket_handler)

    console_handler = logging.StreamHandler()
    console_formatter = logging.Formatter(
        '%(asctime)s - [%(service)s] - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # Package modules log under their own names; route them through this logger
    package_logger = logging.getLogger("session_controller")
    package_logger.setLevel(config.LOG_LEVEL.upper())
    package_logger.handlers = logger.handlers

    for noisy in filter(None, (name.strip() for name in config.NOISY_LOGGERS.split(","))):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
