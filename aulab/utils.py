# aulab/utils.py
from __future__ import annotations

import atexit
import json
import logging
import os
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union

__all__ = ["setup", "get_logger", "log", "ensure_dir", "atomic_write_json", "now_iso"]


def ensure_dir(p: Path):
    p.mkdir(parents=True, exist_ok=True)

def atomic_write_json(path: Path, obj: dict):
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    tmp.replace(path)

def now_iso():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---- internal globals ----
_log_name = "aulab"
log = logging.getLogger(_log_name)
log.addHandler(logging.NullHandler())
log.setLevel(logging.INFO)
log.propagate = False

_q: Optional[queue.SimpleQueue] = None
_listener: Optional[QueueListener] = None
_configured = False

def setup(
    log_dir: Optional[Union[str, os.PathLike]] = None,
    level: Union[int, str] = "INFO",
    console: bool = True,
    filename: str = "aulab.log",
    rotate_when: str = "midnight",
    rotate_backup: int = 7,
    encoding: str = "utf-8",
) -> logging.Logger:
    """
    Configure async logging. Call once at program start (e.g., in cli.main).
    - log_dir=None logs to the console only; with a directory, also writes a
      file rotated daily, keeping rotate_backup copies.
    - level accepts "DEBUG"/"INFO"/"WARNING"/"ERROR".
    """
    global _q, _listener, _configured

    if _configured:
        return log  # idempotent

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    log.setLevel(level)

    fmt = "[%(asctime)s] %(levelname).1s %(process)d %(threadName)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    # Build real handlers (sink side)
    handlers = []
    if console:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(formatter)
        h.setLevel(level)
        handlers.append(h)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=str(log_path / filename),
            when=rotate_when,
            backupCount=rotate_backup,
            encoding=encoding,
            utc=False,
            delay=True,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        handlers.append(file_handler)

    # Queue pipeline: the source-side handler is cheap, I/O runs in the listener thread
    _q = queue.SimpleQueue()
    qh = QueueHandler(_q)
    qh.setLevel(level)

    _clear_handlers(log)
    log.addHandler(qh)

    _listener = QueueListener(_q, *handlers, respect_handler_level=True)
    _listener.start()
    atexit.register(_shutdown_listener)

    _configured = True
    return log


def _clear_handlers(logger: logging.Logger) -> None:
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()


def _shutdown_listener() -> None:
    global _listener
    if _listener:
        _listener.stop()
        _listener = None


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a child logger: get_logger("pipeline") -> aulab.pipeline
    Children propagate into the package logger, which owns the handlers.
    """
    if not name:
        return log
    return logging.getLogger(f"{_log_name}.{name}")
