"""
Logging for the conversation memory manager.

Every module logs through a child of the ``convo_memory`` logger, so a
single call to setup_logging() decides where conversation lifecycle,
compression and storage messages end up.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from convo_memory.config.settings import LoggingSettings


ROOT_LOGGER_NAME = "convo_memory"

_configured = False


def _build_handlers(settings: "LoggingSettings", level: int) -> list[logging.Handler]:
    """Create the console and rotating file handlers the settings ask for."""
    formatter = logging.Formatter(fmt=settings.format, datefmt=settings.date_format)
    handlers: list[logging.Handler] = []

    if settings.log_to_console:
        # stderr, so command output on stdout stays parseable
        handlers.append(logging.StreamHandler(sys.stderr))

    if settings.file_path is not None:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=str(settings.file_path),
                maxBytes=settings.max_file_size_mb * 1024 * 1024,
                backupCount=settings.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    settings: "LoggingSettings | None" = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Attach handlers to the application logger.

    Only the first call has an effect until reset_logging() is called.

    Args:
        settings: Logging section of the configuration. Defaults apply when None.
        level: Level name that overrides ``settings.level``, e.g. "DEBUG"
               for the CLI's --verbose flag.

    Returns:
        The ``convo_memory`` logger.
    """
    global _configured

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return app_logger

    if settings is None:
        from convo_memory.config.settings import LoggingSettings

        settings = LoggingSettings()

    log_level = logging.getLevelName((level or settings.level).upper())

    app_logger.handlers.clear()
    app_logger.setLevel(log_level)
    for handler in _build_handlers(settings, log_level):
        app_logger.addHandler(handler)
    app_logger.propagate = False

    _configured = True
    return app_logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Return a logger under the application namespace.

    ``get_logger(__name__)`` inside the package returns the module logger
    unchanged; other names are nested below ``convo_memory``.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Detach and close all application handlers so setup_logging() can run again."""
    global _configured

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True
    _configured = False


class ContextAdapter(logging.LoggerAdapter):
    """
    Appends ``[key=value]`` tags to each message.

    Example:
        >>> log = get_logger_with_context(__name__, conversation="conv_1")
        >>> log.info("Compressed 6 messages")
        # Compressed 6 messages [conversation=conv_1]
    """

    def process(self, msg, kwargs):
        if not self.extra:
            return msg, kwargs
        tags = " ".join(f"[{key}={value}]" for key, value in self.extra.items())
        return f"{msg} {tags}", kwargs


def get_logger_with_context(name: str | None = None, **context: str) -> ContextAdapter:
    """Return get_logger(name) wrapped so every message carries the given tags."""
    return ContextAdapter(get_logger(name), context)
