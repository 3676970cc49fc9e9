"""
Logging setup

Colourised console output at the configured level, a daily application log
and a longer-lived error log, both under settings.log_dir.
"""
import os
import sys

from loguru import logger

from shopwise.config import Settings, get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logger(settings: Settings = None):
    settings = settings or get_settings()
    os.makedirs(settings.log_dir, exist_ok=True)

    logger.remove()
    logger.add(sys.stdout, colorize=True, format=CONSOLE_FORMAT, level=settings.log_level)

    # JSON lines in production so the host's log shipper can parse them
    logger.add(
        os.path.join(settings.log_dir, "shopwise_{time:YYYY-MM-DD}.log"),
        rotation="00:00",
        retention="30 days",
        compression="zip",
        level="INFO",
        serialize=settings.environment == "production",
    )
    logger.add(
        os.path.join(settings.log_dir, "errors_{time:YYYY-MM-DD}.log"),
        rotation="00:00",
        retention="90 days",
        level="ERROR",
        backtrace=True,
        diagnose=settings.debug,
    )
    return logger


log = setup_logger()
