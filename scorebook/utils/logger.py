import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from scorebook.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def _daily_log_path(log_dir: str) -> Path:
    """Path of today's import log, creating the directory if needed"""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f'scorebook_import_{datetime.now().strftime("%Y%m%d")}.log'

def setup_logger(name: str, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Setup a logger for an import module.

    Console output follows Config.DEBUG; the daily file under LOG_DIR always
    records DEBUG so skipped-record diagnostics survive a quiet console. An
    empty LOG_DIR disables the file handler.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    console_level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_dir = Config.LOG_DIR if log_dir is None else log_dir
    if log_dir:
        file_handler = logging.FileHandler(_daily_log_path(log_dir), encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
