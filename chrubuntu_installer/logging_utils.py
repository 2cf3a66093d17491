from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure root logging: one file handler plus an optional console handler.

    Every command the installer runs is logged, so the file doubles as a
    record of what was done to the disk. If the requested location is not
    writable (read-only /var on some Chrome OS builds), a file in the working
    directory is used instead.

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    root.setLevel(level)

    # configure_logging() may be called more than once (tests, re-entry from main).
    if getattr(root, "_chrubuntu_configured", False):
        return getattr(root, "_chrubuntu_log_path", log_path)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    chosen_path = log_path
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / "chrubuntu-installer.log")
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        root.addHandler(console)

    setattr(root, "_chrubuntu_configured", True)
    setattr(root, "_chrubuntu_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path
