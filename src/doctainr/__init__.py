"""
doctainr - a small desktop-style front-end for a local Docker engine.

This package lists containers, images and volumes, and starts or stops
containers. Its core is a synchronization layer that keeps one in-memory
snapshot of the runtime up to date and lets any number of views observe it.

Main Components:
  - engine.py: SyncEngine, async refresh and command dispatch
  - state.py: SnapshotStore, the observable snapshot and status flags
  - reactive.py: Signal, the observable value behind every store field
  - backend.py: DockerBackend, docker-py adapter
  - model.py: Data structures (ContainerInfo, ImageInfo, VolumeInfo)
  - config.py: YAML configuration
  - textual_app.py: Textual UI

Usage:
  python -m doctainr

Dependencies:
  - docker>=7.0.0
  - PyYAML, textual
  - Python 3.9+
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

__version__ = "0.1.0"

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def get_log_path() -> str:
    """
    Get the log file path following XDG Base Directory spec.

    Returns XDG_DATA_HOME/doctainr/logs/doctainr.log with fallback to /tmp.
    Creates directory if it doesn't exist.
    """
    xdg_data_home = os.environ.get('XDG_DATA_HOME')
    if not xdg_data_home:
        xdg_data_home = Path.home() / '.local' / 'share'
    else:
        xdg_data_home = Path(xdg_data_home)

    log_dir = xdg_data_home / 'doctainr' / 'logs'

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / 'doctainr.log')
    except (PermissionError, OSError):
        return '/tmp/doctainr.log'


def setup_logging(level: str = "INFO", file_path: Optional[str] = None,
                  max_size_mb: int = 10, backup_count: int = 5) -> logging.Handler:
    """Send the package's log records to a rotating file (the UI owns the terminal)."""
    handler = RotatingFileHandler(
        file_path or get_log_path(),
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
