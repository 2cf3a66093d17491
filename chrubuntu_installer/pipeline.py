from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single installer phase."""

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


class RebootRequired(Exception):
    """Raised by a step after it scheduled a reboot; the installer must be re-run afterwards."""

    def __init__(self, reason: str, state: Dict[str, Any]):
        super().__init__(reason)
        self.reason = reason
        self.state = state


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]
    halted: bool = False


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run steps in order with resume semantics.

    The step named by start_at runs even when it is already marked completed;
    later steps follow the normal resume rules.

    A RebootRequired from a step stops the run. Completed steps are forgotten
    in that case, since runtime effects (stopped powerd, mounts) do not survive
    the reboot.
    """

    known = {s.step_id for s in steps}
    for name in (start_at, stop_after):
        if name is not None and name not in known:
            raise RuntimeError(f"Unknown step {name!r} (known: {', '.join(s.step_id for s in steps)})")

    ran: List[str] = []
    skipped: List[str] = []

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        exe = state.setdefault("execution", {})
        exe["current_step"] = step.step_id

        # an explicit --start-at always re-runs that step
        requested = step.step_id == start_at
        if not (force or requested) and is_step_completed(state, step.step_id):
            logger.info("Skipping step %s (already completed)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("Running step %s", step.step_id)
            try:
                state = step.run(state)
            except RebootRequired as r:
                state = r.state
                exe = state.setdefault("execution", {})
                logger.info("Step %s requested a reboot: %s", step.step_id, r.reason)
                exe["halted"] = {"step": step.step_id, "reason": r.reason}
                exe["completed_steps"] = []
                exe["current_step"] = None
                return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped, halted=True)
            mark_step_completed(state, step.step_id)
            ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
