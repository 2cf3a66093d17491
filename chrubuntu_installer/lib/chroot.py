from __future__ import annotations

import logging
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

# Mount order matters: /dev/pts lives inside /dev.
BIND_MOUNTS = ("/proc", "/dev", "/dev/pts", "/sys")


def chroot_cmd(target_root: str, argv: Sequence[str], *, dry_run: bool = False) -> None:
    """Run a command inside target root."""

    run_cmd(["chroot", target_root, *argv], dry_run=dry_run)


def mount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    # Package maintainer scripts need device nodes and process info
    for src in BIND_MOUNTS:
        run_cmd(["mount", "-o", "bind", src, f"{target_root}{src}"], dry_run=dry_run)


def umount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    for src in reversed(BIND_MOUNTS):
        r = run_cmd(["umount", f"{target_root}{src}"], check=False, dry_run=dry_run)
        if not r.ok:
            logger.warning("Could not unmount %s%s: %s", target_root, src, r.stderr.strip())
