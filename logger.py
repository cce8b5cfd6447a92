"""Logging configuration for Centavo.

Logs go to a dated file under the configured log directory and to the console.
Modules obtain child loggers (``centavo.<component>``) through ``get_logger``
so that every record can be traced back to the part of the classifier that
produced it.
"""

import logging
from datetime import date
from typing import Optional
from config import Config

ROOT_LOGGER_NAME = "centavo"


def setup_logging(config: Config, console: bool = True) -> logging.Logger:
    """Set up application logging with file and console handlers.

    Args:
        config: Application configuration containing log settings.
        console: Whether to also log to the console.

    Returns:
        Configured root application logger.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.log_level)

    # Calling setup twice (CLI + reset script) must not duplicate handlers
    logger.handlers.clear()

    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_file_path = config.log_dir / f"centavo-{date.today().isoformat()}.log"
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.log_level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
        logger.addHandler(console_handler)

    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """Get the application logger, or a child logger for one component.

    Args:
        component: Optional component name, e.g. ``"engine"``.

    Returns:
        ``centavo`` logger, or ``centavo.<component>`` when a component is given.
    """
    if component:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
    return logging.getLogger(ROOT_LOGGER_NAME)
