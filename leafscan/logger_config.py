"""
Logging Configuration for LeafScan-Hybrid
==========================================
Centralized logging setup for the engine and its command-line front end.

Features:
- Console logging with colored level names
- Optional rotating log files
- Timestamped file records
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional, Union


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        if hasattr(sys.stderr, 'isatty') and sys.stderr.isatty() and levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logger(
    name: str = 'leafscan',
    log_dir: Optional[Union[str, Path]] = None,
    log_file: Optional[str] = None,
    console_level: Union[int, str] = logging.INFO,
    file_level: Union[int, str] = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Setup logger with console and optional file handlers.

    Args:
        name: Logger name
        log_dir: Directory for log files (no file handler if empty)
        log_file: Log filename (auto-generated if None)
        console_level: Logging level for console
        file_level: Logging level for file
        max_bytes: Max size per log file
        backup_count: Number of backup files to keep

    Returns:
        logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()  # Remove any existing handlers

    # Console handler with color
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredFormatter('%(levelname)s | %(message)s'))
    logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        if log_file is None:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            log_file = f'{name}_{timestamp}.log'

        log_filepath = log_path / log_file

        # File handler with rotation
        file_handler = RotatingFileHandler(
            log_filepath,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)
        logger.debug(f"Log file: {log_filepath}")

    return logger


def setup_from_config(cfg) -> logging.Logger:
    """Configure the package logger from a Config class."""
    return setup_logger(
        name='leafscan',
        log_dir=cfg.LOG_DIR or None,
        console_level=cfg.LOG_LEVEL,
    )
