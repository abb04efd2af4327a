"""loguru sinks for command-line runs."""

from datetime import datetime, timezone
from pathlib import Path
import sys

from loguru import logger

_FORMAT = "{time:HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def setup_logger(
    log_dir: str = "logs",
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "30 days",
) -> Path:
    """Replace loguru's default sink with stderr plus one rotating file per run.

    Returns the path of the run's log file.
    """
    log_file = Path(log_dir) / f"circlevo_{datetime.now(timezone.utc):%Y%m%d_%H%M%S}.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    # colorize=None lets loguru decide from the terminal
    logger.add(sys.stderr, level=level, format="<level>" + _FORMAT + "</level>", colorize=None)
    logger.add(
        log_file,
        level=level,
        format=_FORMAT,
        rotation=rotation,
        retention=retention,
        compression="zip",
        encoding="utf-8",
    )
    logger.debug("[setup_logger] level={}, file={}", level, log_file)
    return log_file
