import sys

from loguru import logger

from transmute.settings import LoggingSettings, settings

__all__ = ["configure_logger", "logger"]


def configure_logger(config: LoggingSettings = settings.logging):
    """
    Configure the loguru logger for the transmute library. Records go to stderr and,
    when a log file is configured, to that file as JSON lines.

    :param config: The logging settings to apply, defaults to the global settings.
    """

    if config.disabled:
        logger.disable("transmute")
        return

    logger.enable("transmute")

    if config.clear_loggers:
        logger.remove()

    logger.add(
        sys.stderr,
        level=config.console_log_level.upper(),
        format="{time} | {function} | {level} - {message}",
    )

    if config.log_file or config.log_file_level:
        log_file = config.log_file or "transmute.log"
        log_file_level = config.log_file_level or "INFO"
        logger.add(log_file, level=log_file_level.upper(), serialize=True)


# console logging at the configured level, no file sink unless requested
configure_logger()
