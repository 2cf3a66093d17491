from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.command import run_cmd
from ..lib.hwdetect import detect_arch, firmware_type

logger = logging.getLogger(__name__)

POWERD_STOPPED = "powerd stop/waiting"


class PreflightStep:
    step_id = "10_preflight"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))

        fw = firmware_type(dry_run=dry_run)
        if fw != "developer":
            raise RuntimeError(
                f"Your Chromebook is not running a developer BIOS (mainfw_type={fw!r})!\n"
                "You need to run:\n\n"
                "  sudo chromeos-firmwareupdate --mode=todev\n\n"
                "and then re-run this installer."
            )

        # Resolve the platform before anything touches the disk.
        arch = detect_arch(cfg.get("arch"))

        powerd = run_cmd(["initctl", "status", "powerd"], check=False, dry_run=dry_run).stdout.strip()
        if powerd != POWERD_STOPPED:
            logger.info("Stopping powerd to keep display from timing out...")
            run_cmd(["initctl", "stop", "powerd"], dry_run=dry_run)
        run_cmd(["setterm", "-blank", "0"], dry_run=dry_run)

        hw = state.setdefault("hardware", {})
        hw["firmware"] = fw
        hw["arch"] = arch.as_dict()

        logger.info("Chrome device architecture is %s (ubuntu=%s, vbutil=%s)", arch.machine, arch.ubuntu_arch, arch.vbutil_arch)
        return state
