from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 5
    delay_s: float = 1.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "RetryPolicy":
        return cls(
            attempts=int(cfg.get("retry_attempts", 5)),
            delay_s=float(cfg.get("retry_delay_s", 1.0)),
        )


DEFAULT_POLICY = RetryPolicy()


def retry(op: Callable[[], bool], *, policy: RetryPolicy = DEFAULT_POLICY, what: str = "operation") -> bool:
    """Call op() until it returns True or the policy runs out of attempts.

    Returns whether op() ever succeeded. The caller decides whether exhaustion
    is fatal or only worth a warning.
    """

    for attempt in range(1, policy.attempts + 1):
        if op():
            logger.info("%s succeeded (attempt %d)", what, attempt)
            return True
        if attempt < policy.attempts:
            logger.info("%s failed (attempt %d). Retrying in %s second(s)...", what, attempt, policy.delay_s)
            time.sleep(policy.delay_s)
        else:
            logger.info("%s failed (attempt %d)", what, attempt)
    return False
