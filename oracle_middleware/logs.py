"""Logging setup for the middleware scripts."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import LOGS_DIR


def setup_logging(name: str, verbose: bool = False, log_dir: Optional[Path] = None) -> Path:
    """
    Configure console and file logging.

    Args:
        name: Prefix of the log file name.
        verbose: Log DEBUG to the console instead of INFO.
        log_dir: Directory for the log file (default: logs/ in the project root).

    Returns:
        Path of the log file.
    """
    level = logging.DEBUG if verbose else logging.INFO

    # Create formatters
    console_format = "%(asctime)s [%(levelname)s] %(message)s"
    file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format, datefmt="%H:%M:%S"))

    # File handler
    log_dir = log_dir or LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(file_format))

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    return log_file
