import logging
import os
from typing import Dict

from quart.logging import default_handler

# Libraries that are noisy at INFO while compiling assets
QUIET_LOGGERS = ("webassets",)


class LoggingHelper:
    """Helper class for setting up logging.

    Library log levels can be overriden using envvars, e.g.:
    WEBASSETS_LOG_LEVEL=DEBUG
    """

    def __init__(self, app=None):
        self._enabled_loggers: Dict[str, str] = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Configure the root logger from the app's LOG_LEVEL.

        A single console handler on the root logger serves the application,
        the asset pipeline and any library loggers.
        """
        log_level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
        numeric_level = getattr(logging, log_level, None)
        if not isinstance(numeric_level, int):
            raise ValueError(f"Invalid log level: {log_level}")

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(console_handler)

        # Let records propagate to the root handler instead
        app.logger.removeHandler(default_handler)
        app.logger.setLevel(numeric_level)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        self._load_enabled_loggers(app)

        app.extensions["logging_helper"] = self
        app.logger.info(f"Logging initialised with level: {log_level}")

    def _load_enabled_loggers(self, app):
        """Load explicitly configured loggers from environment."""
        for key, value in os.environ.items():
            if key.endswith("_LOG_LEVEL"):
                logger_name = key[:-10].lower()  # Remove _LOG_LEVEL suffix
                self.set_logger_level(app, logger_name, value)

    def set_logger_level(self, app, logger_name: str, level: str):
        """Set log level for a specific logger.

        Args:
            logger_name: Name of the logger
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        numeric_level = getattr(logging, level.upper(), None)
        if not isinstance(numeric_level, int):
            raise ValueError(f"Invalid log level: {level}")

        logging.getLogger(logger_name).setLevel(numeric_level)
        self._enabled_loggers[logger_name] = level
        app.logger.info(f"Set {logger_name} log level to {level}")

    @property
    def enabled_loggers(self) -> Dict[str, str]:
        return dict(self._enabled_loggers)
