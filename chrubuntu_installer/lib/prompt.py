from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def pause(message: str, *, assume_yes: bool = False) -> None:
    """Wait for [Enter]; the operator aborts with CTRL+C."""

    if assume_yes:
        logger.info("Auto-confirmed: %s", message)
        return
    input(message)


def ask(message: str) -> str:
    return input(message).strip()
