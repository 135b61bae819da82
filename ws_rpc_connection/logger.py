from __future__ import annotations

import logging
import os
from enum import Enum
from logging.config import dictConfig
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from loguru import Logger as LoguruLogger  # type: ignore[import-not-found]

ENV_VAR = "WS_CONNECTION_LOGGING"
ROOT_LOGGER_NAME = "ws_rpc_connection"


class LoggingModes(Enum):
    # silence the library's loggers
    NO_LOGS = 0
    # library loggers write to stderr with their own handler
    CONSOLE = 1
    # plain logging calls, configured (or not) by the application
    SIMPLE = 2
    # log via the loguru module
    LOGURU = 3


class LoggingConfig:
    """
    Logging setup for the library.

    Only loggers nested under ``ws_rpc_connection`` are ever configured, so
    selecting a mode never touches the host application's own loggers.
    """

    CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        self._mode: LoggingModes | None = None

    def get_mode(self) -> LoggingModes:
        # mode not set yet - take it from ENV or fall back to SIMPLE
        if self._mode is None:
            mode = LoggingModes.__members__.get(
                os.environ.get(ENV_VAR, "").upper(), LoggingModes.SIMPLE
            )
            self.set_mode(mode)
        if self._mode is None:
            raise RuntimeError("Logging mode must be set by set_mode() method")
        return self._mode

    def set_mode(
        self, mode: LoggingModes = LoggingModes.CONSOLE, level: int = logging.INFO
    ) -> None:
        """
        Configure logging. CONSOLE and NO_LOGS call 'logging.config.dictConfig()'
        for the "ws_rpc_connection" logger only; SIMPLE and LOGURU leave logging
        configuration to the application. Call this method before opening
        connections.

        Args:
            mode (LoggingModes, optional): The mode to set logging to. Defaults to
            LoggingModes.CONSOLE.
            level (int, optional): The logging level. Defaults to logging.INFO.
        """
        self._mode = mode
        if mode == LoggingModes.CONSOLE:
            dictConfig(self._build_config(handler="console", level=level))
        elif mode == LoggingModes.NO_LOGS:
            dictConfig(self._build_config(handler="null", level=logging.CRITICAL))

    def _build_config(self, handler: str, level: int) -> dict[str, Any]:
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": self.CONSOLE_FORMAT,
                    "datefmt": self.DATE_FORMAT,
                },
            },
            "handlers": {
                "console": {
                    "formatter": "default",
                    "class": "logging.StreamHandler",
                },
                "null": {"class": "logging.NullHandler"},
            },
            "loggers": {
                ROOT_LOGGER_NAME: {
                    "handlers": [handler],
                    "propagate": False,
                    "level": level,
                },
            },
        }


# Singleton for logging configuration
logging_config = LoggingConfig()


def get_logger(name: str) -> logging.Logger | LoguruLogger:
    """
    Get a logger object to log with.
    Called by inner modules for logging.

    Args:
        name (str): The name of the logger module.

    Returns:
        Logger object (either standard logging.Logger or loguru logger).
    """
    mode = logging_config.get_mode()
    if mode == LoggingModes.LOGURU:
        from loguru import logger

        return logger
    # regular python logging
    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
