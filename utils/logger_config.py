from __future__ import annotations
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from utils.CONSTANT import UTILS_SAVE_DIR

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = 'INFO', log_dir: Path | None = None) -> None:
    """Configure root logging: rotating file under ~/.scoreview/logs plus console."""
    log_dir = Path(log_dir) if log_dir is not None else UTILS_SAVE_DIR / 'logs'
    os.makedirs(log_dir, exist_ok=True)
    log_file = log_dir / 'scoreview.log'

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate output when called twice (e.g. from tests)
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    # 2MB per file, keep 3 backups
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2 * 1024 * 1024, backupCount=3, encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logging.info("===== Logging setup complete =====")
