from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib import cgpt
from ..lib.block import is_mounted
from ..lib.bootswitch import install_toggle_scripts
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)


class BootSwitchStep:
    step_id = "60_boot_switch"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        parts = exe.get("partitions") or {}
        disk = parts.get("disk")
        target_root = exe.get("mount_point")
        if not disk or not target_root:
            raise RuntimeError("execution.partitions/mount_point missing; run earlier steps first")

        dry_run = bool(cfg.get("dry_run", False))
        if not dry_run and not is_mounted(target_root):
            raise RuntimeError(f"{target_root} is not mounted; re-run with --start-at 30_install_rootfs")
        index = int(cfg["kernel_partition_index"])

        logger.info("Setting Ubuntu Server kernel partition (%s) as boot priority for next boot...", parts.get("kernel"))
        cgpt.set_boot_flags(disk, index, priority=5, tries=1, dry_run=dry_run)

        install_toggle_scripts(target_root, disk, index, dry_run=dry_run)

        logger.info("Cleaning up mounts...")
        run_cmd(["umount", target_root], dry_run=dry_run)
        return state
