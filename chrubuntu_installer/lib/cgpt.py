from __future__ import annotations

import logging
from typing import Optional

from .command import cmd_output, run_cmd

logger = logging.getLogger(__name__)

_SHOW_FLAGS = {
    "size": "-s",
    "begin": "-b",
}


def create_table(disk: str, *, dry_run: bool = False) -> None:
    run_cmd(["cgpt", "create", disk], dry_run=dry_run)


def add_partition(
    disk: str,
    index: int,
    *,
    begin: Optional[int] = None,
    size: Optional[int] = None,
    label: Optional[str] = None,
    type_: Optional[str] = None,
    successful: Optional[int] = None,
    priority: Optional[int] = None,
    tries: Optional[int] = None,
    dry_run: bool = False,
) -> None:
    """Add or modify GPT entry `index` on disk; unset attributes are left untouched."""

    argv = ["cgpt", "add", "-i", str(index)]
    if begin is not None:
        argv += ["-b", str(begin)]
    if size is not None:
        argv += ["-s", str(size)]
    if successful is not None:
        argv += ["-S", str(successful)]
    if priority is not None:
        argv += ["-P", str(priority)]
    if tries is not None:
        argv += ["-T", str(tries)]
    if label is not None:
        argv += ["-l", label]
    if type_ is not None:
        argv += ["-t", type_]
    argv.append(disk)
    run_cmd(argv, dry_run=dry_run)


def show_field(disk: str, index: int, field: str, *, dry_run: bool = False) -> int:
    """Read a numeric attribute (size|begin, in sectors) of partition `index`."""

    flag = _SHOW_FLAGS.get(field)
    if flag is None:
        raise ValueError(f"Unsupported cgpt field: {field}")

    out = cmd_output(["cgpt", "show", "-i", str(index), "-n", flag, "-q", disk], dry_run=dry_run)
    if not out and dry_run:
        return 0
    try:
        return int(out)
    except ValueError:
        raise RuntimeError(f"Unexpected cgpt {field} for {disk} partition {index}: {out!r}") from None


def set_boot_flags(
    disk: str,
    index: int,
    *,
    priority: int,
    tries: Optional[int] = None,
    successful: Optional[int] = None,
    dry_run: bool = False,
) -> None:
    logger.info("Boot flags for %s partition %s: priority=%s tries=%s successful=%s", disk, index, priority, tries, successful)
    add_partition(disk, index, priority=priority, tries=tries, successful=successful, dry_run=dry_run)
