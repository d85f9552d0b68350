"""Logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig

LOG_FILE_NAME = "lutim_uploader.log"


def setup_logging(config: AppConfig) -> logging.Logger:
    """Configure root logging at ``config.log_level`` and return the app logger."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    # urllib3 logs full request lines at DEBUG, keep it quiet
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger = logging.getLogger("lutim_uploader")
    server = config.metadata.get("server_label") or config.lutim_url
    logger.info("Uploading to %s, logging to %s at %s", server, log_file, config.log_level)
    return logger


def mask_secret(value: str, visible: int = 4) -> str:
    """Return a short reference to a secret suitable for log output."""
    if not value:
        return ""
    return value[:visible] + "***"
