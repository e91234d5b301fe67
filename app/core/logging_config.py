"""Console logging for the API process."""

import logging

from app.core.config import Settings

DEV_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s"
PROD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(config: Settings) -> logging.Logger:
    """Configure the ``app`` logger hierarchy.

    Safe to call more than once; existing handlers are replaced.
    """
    root_logger = logging.getLogger("app")
    root_logger.setLevel(config.LOG_LEVEL.upper())
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter(
            fmt=DEV_FORMAT if config.DEBUG else PROD_FORMAT,
            datefmt="%H:%M:%S" if config.DEBUG else "%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

    return root_logger
