from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional

from .install_config import build_config, load_install_config
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import PipelineResult, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    BootSwitchStep,
    ConfigureSystemStep,
    FinalizeRebootStep,
    InstallRootFSStep,
    PartitionStep,
    PreflightStep,
    RepackKernelStep,
)

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    return [
        PreflightStep(),
        PartitionStep(),
        InstallRootFSStep(),
        ConfigureSystemStep(),
        RepackKernelStep(),
        BootSwitchStep(),
        FinalizeRebootStep(),
    ]


def _forget_other_target(state: Dict[str, Any], config: Dict[str, Any]) -> None:
    """Drop progress recorded for another disk, or by a dry run, before resuming."""

    exe = state["execution"]
    target = {"disk": config.get("target_disk"), "dry_run": bool(config.get("dry_run", False))}
    if "target" in exe:
        recorded = exe["target"]
    else:
        recorded = {"disk": (exe.get("partitions") or {}).get("disk"), "dry_run": False}

    if (exe.get("completed_steps") or exe.get("partitions")) and recorded != target:
        logger.warning(
            "Saved progress belongs to %s%s; starting over for %s%s",
            recorded.get("disk") or "the internal disk",
            " (dry run)" if recorded.get("dry_run") else "",
            target["disk"] or "the internal disk",
            " (dry run)" if target["dry_run"] else "",
        )
        exe["completed_steps"] = []
        exe.pop("partitions", None)
        exe.pop("mount_point", None)
    exe["target"] = target


def run(
    *,
    config: Dict[str, Any],
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run the installer pipeline, persisting state for resume."""

    actual_log_path = configure_logging(log_path=log_path)

    state = load_state(state_path)
    # Settings come from this invocation; the stored copy is only a record.
    state["config"] = config
    state = ensure_defaults(state)
    _forget_other_target(state, config)
    state["execution"].pop("halted", None)
    state["execution"].setdefault("paths", {})["log_path_actual"] = actual_log_path

    try:
        result = run_pipeline(
            state=state,
            steps=build_steps(),
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state["execution"]["summary"] = {"ran_steps": result.ran_steps, "skipped_steps": result.skipped_steps}
        return result
    except Exception as e:
        logger.exception("Installer failed")
        state["execution"]["errors"].append(
            {
                "step": state["execution"].get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        save_state(state_path, state)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="chrubuntu-installer",
        description="Install Ubuntu Server on a Chrome OS device in developer mode.",
    )
    p.add_argument(
        "target_disk",
        nargs="?",
        default=None,
        help="Wipe and install onto this disk (e.g. /dev/sda). "
        "Without it, KERN-C/ROOT-C on the internal disk are used.",
    )
    p.add_argument("--config", default=None, help="YAML file with installer settings")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--size-gb", default=None, help="Size reserved for Ubuntu when resizing the internal disk")
    p.add_argument("--yes", action="store_true", help="Do not wait for [Enter] at confirmation prompts")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 50_repack_kernel)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        file_overrides = load_install_config(args.config) if args.config else {}
        config = build_config(
            file_overrides=file_overrides,
            cli_overrides={
                "target_disk": args.target_disk,
                "size_gb": args.size_gb,
                "assume_yes": True if args.yes else None,
                "dry_run": True if args.dry_run else None,
            },
        )
    except (OSError, ValueError) as e:
        configure_logging(log_path=args.log)
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        result = run(
            config=config,
            state_path=args.state,
            log_path=args.log,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=args.force,
        )
    except KeyboardInterrupt:
        logger.error("Interrupted; the disk may be partially installed")
        return 130
    except EOFError:
        logger.error("No answer on stdin for a confirmation prompt; pass --yes for unattended runs")
        return 1
    except (RuntimeError, ValueError, OSError) as e:
        logger.error("%s", e)
        return 1

    if result.halted:
        logger.info("Rebooting. Re-run chrubuntu-installer once Chrome OS is back up.")
    return 0
