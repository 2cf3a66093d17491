from __future__ import annotations

import logging
import re
from pathlib import Path

from .command import run_cmd

logger = logging.getLogger(__name__)

DEV_KEYBLOCK = "/usr/share/vboot/devkeys/kernel.keyblock"
DEV_SIGNPRIVATE = "/usr/share/vboot/devkeys/kernel_data_key.vbprivk"

_TRAILING_NUMBER = re.compile(r"^(.*?)(\d+)$")


def build_cmdline(root_dev: str) -> str:
    # lsm.module_locking=0: the stock kernel has to load modules from a non-stock root
    return f"console=tty1 debug verbose root={root_dev} rootwait rw lsm.module_locking=0 init=/sbin/init"


def write_cmdline(path: str, cmdline: str, *, dry_run: bool = False) -> None:
    if dry_run:
        logger.info("Would write kernel command line to %s: %s", path, cmdline)
        return
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(cmdline + "\n", encoding="utf-8")


def running_kernel_partition(root_dev: str, *, offset: int = 1) -> str:
    """Kernel partition paired with the running root (/dev/mmcblk0p3 -> /dev/mmcblk0p2)."""

    m = _TRAILING_NUMBER.match(root_dev)
    if not m:
        raise RuntimeError(f"Cannot derive kernel partition from root device {root_dev!r}")
    prefix, num = m.group(1), int(m.group(2))
    if num - offset < 1:
        raise RuntimeError(f"Root device {root_dev} has no kernel partition {offset} slot(s) before it")
    return f"{prefix}{num - offset}"


def repack_kernel(
    *,
    target_kern: str,
    old_blob: str,
    config_path: str,
    vbutil_arch: str,
    keyblock: str = DEV_KEYBLOCK,
    signprivate: str = DEV_SIGNPRIVATE,
    dry_run: bool = False,
) -> None:
    """Re-sign the running kernel onto target_kern with a new command line."""

    run_cmd(
        [
            "vbutil_kernel",
            "--repack",
            target_kern,
            "--oldblob",
            old_blob,
            "--keyblock",
            keyblock,
            "--version",
            "1",
            "--signprivate",
            signprivate,
            "--config",
            config_path,
            "--arch",
            vbutil_arch,
        ],
        dry_run=dry_run,
    )
