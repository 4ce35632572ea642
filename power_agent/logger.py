"""Logging setup for the power agent"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "power_agent"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None,
                  max_bytes: int = 10485760, backup_count: int = 5) -> logging.Logger:
    """
    Configure the package logger: console always, rotating file when log_dir is set.
    Calling it again replaces the handlers.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path / f"{ROOT_LOGGER}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: dict) -> logging.Logger:
    lcfg = config["logging"]
    return setup_logging(
        level=lcfg["level"],
        log_dir=lcfg.get("dir"),
        max_bytes=lcfg["rotation"]["max_bytes"],
        backup_count=lcfg["rotation"]["backup_count"],
    )
