# engine/logconf.py
from __future__ import annotations

import datetime
import logging
import pathlib
import sys

FORMAT = "%(asctime)s | %(levelname)-5s | %(module)s | %(message)s"


def init(level: str = "INFO", log_dir: pathlib.Path | None = None) -> None:
    """Configure root logger once per run; optionally mirror to a daily file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / f"firstdraft_{datetime.date.today()}.log", encoding="utf-8")
        )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=FORMAT,
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
