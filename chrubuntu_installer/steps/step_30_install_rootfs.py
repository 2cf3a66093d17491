from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.block import is_mounted
from ..lib.command import run_cmd
from ..lib.prompt import pause
from ..lib.rootfs import TARBALL_NAME, base_tarball_url, download, extract, is_valid_gzip

logger = logging.getLogger(__name__)


class InstallRootFSStep:
    step_id = "30_install_rootfs"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        hw = state.get("hardware") or {}
        exe = state.setdefault("execution", {})
        parts = exe.get("partitions") or {}
        rootfs = parts.get("rootfs")
        if not rootfs:
            raise RuntimeError("execution.partitions.rootfs missing; run partition step first")

        arch = (hw.get("arch") or {}).get("ubuntu_arch")
        if not arch:
            raise RuntimeError("hardware.arch missing; run preflight step first")

        dry_run = bool(cfg.get("dry_run", False))
        mount_point = str(cfg["mount_point"])
        version = str(cfg["ubuntu_version"])

        if is_mounted(rootfs, dry_run=dry_run):
            raise RuntimeError(
                f"Refusing to continue since {rootfs} appears to be mounted. "
                "Try rebooting or unmounting it first."
            )

        logger.info("Formatting %s as ext4...", rootfs)
        run_cmd(["mkfs.ext4", "-F", rootfs], dry_run=dry_run)

        if not dry_run:
            Path(mount_point).mkdir(parents=True, exist_ok=True)
        logger.info("Mounting %s to %s...", rootfs, mount_point)
        run_cmd(["mount", "-t", "ext4", rootfs, mount_point], dry_run=dry_run)
        exe["mount_point"] = mount_point

        print(
            f"\nChrome device architecture is: {hw['arch'].get('machine')}\n"
            f"Installing Ubuntu {version} ({cfg['ubuntu_metapackage']})\n"
            f"Installing Ubuntu Arch: {arch}\n"
        )
        pause("Press [Enter] to continue...", assume_yes=bool(cfg.get("assume_yes", False)))

        url = base_tarball_url(str(cfg["ubuntu_mirror"]), version, arch)
        tarball = str(Path(cfg["download_dir"]) / TARBALL_NAME)
        logger.info("Downloading Ubuntu Base %s for %s from %s", version, arch, url)
        try:
            download(url, tarball, dry_run=dry_run)
        except RuntimeError:
            run_cmd(["umount", mount_point], check=False, dry_run=dry_run)
            raise

        if not dry_run and not is_valid_gzip(tarball):
            logger.error("Downloaded file %s is not a valid gzip archive. It might be an HTML error page.", tarball)
            run_cmd(["umount", mount_point], check=False)
            raise RuntimeError(f"Invalid ubuntu-base archive downloaded from {url}; please check the URL")

        logger.info("Extracting Ubuntu Base into %s...", mount_point)
        try:
            extract(tarball, mount_point, dry_run=dry_run)
        except RuntimeError:
            run_cmd(["umount", mount_point], check=False, dry_run=dry_run)
            raise

        if not dry_run:
            Path(tarball).unlink()

        exe.setdefault("decisions", {})["ubuntu_base_url"] = url
        return state
