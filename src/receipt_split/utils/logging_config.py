import logging
import sys
from typing import Union

LOGGER_NAME = "receipt_split"


def resolve_level(level: Union[int, str]) -> int:
    """Maps a level name like "debug" to its number; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).strip().upper(), logging.INFO)


def setup_logging(name: str = LOGGER_NAME, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Sets up the split engine logger.

    Args:
        name: Name of the logger.
        level: Logging level or level name (default: INFO).

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Handlers are attached once; later calls only adjust the level
    logger.setLevel(resolve_level(level))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# Default logger for the project; SplitSettings.from_env() applies the configured level
logger = setup_logging()
