from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.block import current_root_disk
from ..lib.command import run_cmd
from ..lib.partitioning import FreshPartition, PartitionLayout, ResizeInPlace
from ..lib.prompt import pause
from ..lib.retry import RetryPolicy
from ..pipeline import RebootRequired

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "20_partition"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        dry_run = bool(cfg.get("dry_run", False))
        assume_yes = bool(cfg.get("assume_yes", False))

        layout = PartitionLayout.from_config(cfg)
        policy = RetryPolicy.from_config(cfg)
        running_disk = current_root_disk(dry_run=dry_run)

        target_disk = cfg.get("target_disk")
        if target_disk:
            if target_disk == running_disk:
                raise RuntimeError(
                    f"{target_disk} holds the running Chrome OS root; "
                    "run without a target disk to install alongside Chrome OS"
                )
            logger.info("Got %s as target drive", target_disk)
            print(f"\nWARNING! All data on {target_disk} will be wiped out! Continue at your own risk!\n")
            pause(
                f"Press [Enter] to install Ubuntu Server on {target_disk} or CTRL+C to quit",
                assume_yes=assume_yes,
            )
            result = FreshPartition(disk=target_disk, layout=layout).apply(policy=policy, dry_run=dry_run)
            mode = "fresh"
        else:
            if not running_disk and not dry_run:
                raise RuntimeError("rootdev did not report the boot disk; pass a target disk explicitly")
            result = ResizeInPlace(disk=running_disk, layout=layout).apply(
                size_gb=cfg.get("size_gb"),
                policy=policy,
                dry_run=dry_run,
            )
            mode = "resize"

        exe["partitions"] = result.as_dict()
        exe.setdefault("decisions", {})["partition_mode"] = mode

        if result.reboot_required:
            run_cmd(["reboot"], dry_run=dry_run)
            raise RebootRequired(f"partition table of {result.disk} was modified; re-run after reboot", state)

        logger.info("Target kernel partition: %s", result.kernel)
        logger.info("Target root FS partition: %s", result.rootfs)
        return state
