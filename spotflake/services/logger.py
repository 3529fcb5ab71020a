import logging

from spotflake.core.config import settings

LOGGER_NAME = "spotflake"


def setup_logger():
    app_logger = logging.getLogger(LOGGER_NAME)

    # Modules call this at import time; attach the handler only once
    if not app_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        app_logger.addHandler(handler)

    app_logger.setLevel(settings.LOG_LEVEL.upper())

    return app_logger
