from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any, Dict

from ..lib.block import is_mounted
from ..lib.chroot import chroot_cmd, mount_chroot_binds, umount_chroot_binds
from ..lib.command import run_cmd
from ..lib.provision import PROVISION_SCRIPT, render_hosts, render_provision_script, write_file

logger = logging.getLogger(__name__)

CGPT_CANDIDATES = ("/usr/bin/old_bins/cgpt", "/usr/bin/cgpt")


def _host_cgpt() -> str:
    for candidate in CGPT_CANDIDATES:
        if Path(candidate).exists():
            return candidate
    return CGPT_CANDIDATES[-1]


def _copy_best_effort(src: str, dst: str, what: str, *, dry_run: bool) -> bool:
    run_cmd(["mkdir", "-p", dst], dry_run=dry_run)
    r = run_cmd(["cp", "-ar", f"{src}/.", dst], check=False, dry_run=dry_run)
    if not r.ok:
        # Driver coverage differs between Chrome OS updates; the system still boots.
        logger.warning("Could not copy all %s from %s: %s", what, src, r.stderr.strip())
    return r.ok


class ConfigureSystemStep:
    step_id = "40_configure_system"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        target_root = exe.get("mount_point")
        if not target_root:
            raise RuntimeError("execution.mount_point missing; run install_rootfs step first")

        dry_run = bool(cfg.get("dry_run", False))
        if not dry_run and not is_mounted(target_root):
            raise RuntimeError(f"{target_root} is not mounted; re-run with --start-at 30_install_rootfs")

        hostname = str(cfg["hostname"]).strip()
        username = str(cfg["username"])

        mount_chroot_binds(target_root, dry_run=dry_run)
        try:
            run_cmd(["cp", "/etc/resolv.conf", f"{target_root}/etc/"], dry_run=dry_run)
            write_file(target_root, "/etc/hostname", hostname + "\n", dry_run=dry_run)
            write_file(target_root, "/etc/hosts", render_hosts(hostname), dry_run=dry_run)

            # cgpt stays available inside Ubuntu for the boot toggles
            run_cmd(["mkdir", "-p", f"{target_root}/usr/bin"], dry_run=dry_run)
            run_cmd(["cp", _host_cgpt(), f"{target_root}/usr/bin/"], dry_run=dry_run)
            run_cmd(["chmod", "a+rx", f"{target_root}/usr/bin/cgpt"], dry_run=dry_run)

            script = render_provision_script(
                username=username,
                password=str(cfg["password"]),
                metapackage=str(cfg["ubuntu_metapackage"]),
                extra_packages=list(cfg.get("extra_packages") or []),
            )
            script_path = write_file(target_root, PROVISION_SCRIPT, script, mode=0o755, dry_run=dry_run)
            logger.info("Running initial setup inside the new Ubuntu environment...")
            try:
                chroot_cmd(target_root, ["/bin/bash", "-c", PROVISION_SCRIPT], dry_run=dry_run)
            finally:
                if not dry_run:
                    script_path.unlink(missing_ok=True)

            kernel_release = platform.release()
            copied_modules = _copy_best_effort(
                f"/lib/modules/{kernel_release}",
                f"{target_root}/lib/modules/{kernel_release}",
                "kernel modules",
                dry_run=dry_run,
            )
            copied_firmware = _copy_best_effort("/lib/firmware", f"{target_root}/lib/firmware", "firmware", dry_run=dry_run)
        finally:
            umount_chroot_binds(target_root, dry_run=dry_run)

        decisions = exe.setdefault("decisions", {})
        decisions["hostname"] = hostname
        decisions["user"] = username
        decisions["kernel_modules_copied"] = copied_modules
        decisions["firmware_copied"] = copied_firmware

        logger.info("Configured hostname=%s user=%s", hostname, username)
        return state
