from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.block import current_root_device
from ..lib.kernel import build_cmdline, repack_kernel, running_kernel_partition, write_cmdline
from ..state_store import is_step_completed

logger = logging.getLogger(__name__)


class RepackKernelStep:
    step_id = "50_repack_kernel"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        hw = state.get("hardware") or {}
        exe = state.setdefault("execution", {})
        parts = exe.get("partitions") or {}
        target_kern = parts.get("kernel")
        target_rootfs = parts.get("rootfs")
        if not target_kern or not target_rootfs:
            raise RuntimeError("execution.partitions missing; run partition step first")

        vbutil_arch = (hw.get("arch") or {}).get("vbutil_arch")
        if not vbutil_arch:
            raise RuntimeError("hardware.arch missing; run preflight step first")

        dry_run = bool(cfg.get("dry_run", False))
        config_path = str(cfg["kernel_config_path"])

        cmdline = build_cmdline(target_rootfs)
        if is_step_completed(state, self.step_id) and Path(config_path).is_file():
            # re-run after a failed boot: keep the operator's edits
            cmdline = Path(config_path).read_text(encoding="utf-8").strip()
            logger.info("Reusing kernel command line from %s: %s", config_path, cmdline)
        else:
            write_cmdline(config_path, cmdline, dry_run=dry_run)

        current_root = current_root_device(dry_run=dry_run)
        if dry_run and not current_root:
            current_root = "/dev/mmcblk0p3"
            logger.info("Dry run: assuming running root %s", current_root)
        old_blob = running_kernel_partition(current_root, offset=int(cfg.get("kernel_root_offset", 1)))

        logger.info("Repacking kernel to %s using current ChromeOS kernel %s...", target_kern, old_blob)
        repack_kernel(
            target_kern=target_kern,
            old_blob=old_blob,
            config_path=config_path,
            vbutil_arch=vbutil_arch,
            keyblock=str(cfg["kernel_keyblock"]),
            signprivate=str(cfg["kernel_signprivate"]),
            dry_run=dry_run,
        )

        decisions = exe.setdefault("decisions", {})
        decisions["kernel_cmdline"] = cmdline
        decisions["kernel_source"] = old_blob
        return state
