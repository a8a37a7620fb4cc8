"""Logging configuration for the Campus Chat client"""

import logging
import logging.handlers
from pathlib import Path
from datetime import datetime


def setup_logging(log_level=logging.INFO, log_dir="logs", console_output=True, file_output=True):
    """
    Configure logging for the chat client

    Args:
        log_level: Logging level (default: INFO)
        log_dir: Directory for log files (default: "logs")
        console_output: Enable console output (default: True)
        file_output: Enable file output (default: True)
    """
    log_path = Path(log_dir)
    if file_output:
        log_path.mkdir(exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handlers - rotating logs
    if file_output:
        log_filename = log_path / f"campus_chat_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_filename,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Errors and above also go to their own file
        error_handler = logging.handlers.RotatingFileHandler(
            log_path / "errors.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

    # httpx logs every request at INFO
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    logging.info("=" * 60)
    logging.info("Campus Chat Starting")
    logging.info(f"Log Level: {logging.getLevelName(log_level)}")
    if file_output:
        logging.info(f"Log Directory: {log_path.absolute()}")
    logging.info("=" * 60)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)
