import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs" / "oi_monitor"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def setup_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level=logging.INFO,
    log_to_file: bool = False,
) -> logging.Logger:
    """
    Setup a logger with console and (optionally) dated file handlers

    Args:
        name: Logger name, "oi_monitor" configures the whole package
        log_dir: Directory to store log files (default: package logs/oi_monitor)
        level: Logging level
        log_to_file: Also write oi_monitor_YYYYMMDD.log, one file per trading day

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # handlers already attached, keep the first configuration
    if logger.handlers:
        return logger

    logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(_formatter())
    logger.addHandler(console_handler)

    if log_to_file:
        log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        log_path = log_dir / f"{name.split('.')[-1]}_{datetime.now():%Y%m%d}.log"

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(_formatter())
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_path}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Plain logger inheriting the oi_monitor package configuration"""
    return logging.getLogger(name)
