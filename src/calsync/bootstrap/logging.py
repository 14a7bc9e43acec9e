from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_LEVEL = os.getenv("CALSYNC_LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.getenv("CALSYNC_LOG_DIR", Path.cwd() / "logs"))


def configure_logging(*, level: Optional[str] = None, log_dir: Optional[Path] = None) -> Path:
    """Configure application-wide logging with a console and a dated file handler."""

    resolved_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    directory = log_dir or LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    log_path = directory / f"calsync-{timestamp}.log"

    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        logging.FileHandler(log_path, encoding="utf-8"),
    ]

    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=handlers,
    )
    return log_path
