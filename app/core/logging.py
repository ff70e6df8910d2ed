"""
Logging configuration for the application
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the root logger once; safe for uvicorn reloads"""
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    has_console_handler = any(getattr(h, "_dashboard_console", False) for h in root_logger.handlers)
    if not has_console_handler:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        console_handler._dashboard_console = True  # type: ignore[attr-defined]
        root_logger.addHandler(console_handler)

    # Keep third-party chatter down
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)
