"""
Loguru configuration for the service.

Modules log through ``from loguru import logger`` with a short stage prefix
(``[match]``, ``[questions]``, ``[jd]``, ``[analysis]``, ``[aliases]``, ``[llm]``).
Call ``setup_logger`` once at start-up; tests leave loguru's default sink alone.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name}:{line} | {message}"


def setup_logger(level: str = "INFO", log_dir: str | Path | None = None) -> Path | None:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level for the console sink
        log_dir: Optional directory; when given, a DEBUG file sink is added there

    Returns:
        Path to the log file, or None when only the console sink is used
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper(), colorize=True)

    if not log_dir:
        return None

    log_dir = Path(log_dir)
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / "jdlens.log"
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG", rotation="10 MB")
    return log_file
