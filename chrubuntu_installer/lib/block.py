from __future__ import annotations

import logging
from typing import List, Tuple

from .command import cmd_output, run_cmd
from .retry import DEFAULT_POLICY, RetryPolicy, retry

logger = logging.getLogger(__name__)


def partition_path(disk: str, n: int) -> str:
    # mmcblk/nvme/loop devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def disk_size_sectors(disk: str, *, dry_run: bool = False) -> int:
    """Return the size of a block device in 512-byte sectors."""

    out = cmd_output(["blockdev", "--getsz", disk], dry_run=dry_run)
    if not out and dry_run:
        return 0
    try:
        return int(out)
    except ValueError:
        raise RuntimeError(f"Unexpected blockdev --getsz output for {disk}: {out!r}") from None


def current_root_device(*, dry_run: bool = False) -> str:
    return cmd_output(["rootdev", "-s"], dry_run=dry_run)


def current_root_disk(*, dry_run: bool = False) -> str:
    return cmd_output(["rootdev", "-d", "-s"], dry_run=dry_run)


def mount_table(*, dry_run: bool = False) -> List[Tuple[str, str]]:
    """Parse `mount` output into (source, target) pairs."""

    r = run_cmd(["mount"], dry_run=dry_run)
    table: List[Tuple[str, str]] = []
    for line in r.stdout.splitlines():
        # "<source> on <target> type <fstype> (<opts>)"
        parts = line.split()
        if len(parts) >= 3 and parts[1] == "on":
            table.append((parts[0], parts[2]))
    return table


def is_mounted(path: str, *, dry_run: bool = False) -> bool:
    """True if path appears as a mounted device or a mount point."""

    return any(path in (src, dst) for src, dst in mount_table(dry_run=dry_run))


def reread_partition_table(disk: str, *, policy: RetryPolicy = DEFAULT_POLICY, dry_run: bool = False) -> bool:
    """Ask the kernel to re-read the partition table. Exhaustion is only a warning."""

    ok = retry(
        lambda: run_cmd(["blockdev", "--rereadpt", disk], check=False, dry_run=dry_run).ok,
        policy=policy,
        what=f"blockdev --rereadpt {disk}",
    )
    if not ok:
        logger.warning("Kernel did not re-read the partition table of %s; continuing", disk)
    return ok


def umount_with_retry(path: str, *, policy: RetryPolicy = DEFAULT_POLICY, dry_run: bool = False) -> None:
    """Unmount path, retrying while other processes hold or remount it.

    Raises RuntimeError if path is still mounted once the retries are used up.
    """

    retry(
        lambda: run_cmd(["umount", path], check=False, dry_run=dry_run).ok,
        policy=policy,
        what=f"umount {path}",
    )
    if is_mounted(path, dry_run=dry_run):
        raise RuntimeError(
            f"Failed to unmount {path}. Cannot proceed safely. "
            "Please ensure no processes are using it and try again."
        )
    logger.info("%s is confirmed unmounted", path)
