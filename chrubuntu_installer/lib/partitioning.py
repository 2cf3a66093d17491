from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from . import cgpt
from .block import disk_size_sectors, partition_path, reread_partition_table, umount_with_retry
from .command import run_cmd
from .prompt import ask
from .retry import DEFAULT_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

SECTORS_PER_GB = 2 * 1024 * 1024  # 512-byte sectors
KERNEL_SECTORS = 32768  # 16 MiB
KERN_A_BEGIN = 64
ROOT_A_BEGIN = 65600
# Tail kept free for the secondary GPT header and entries.
GPT_RESERVE_SECTORS = 33
MIN_SIZE_GB = 5
STATEFUL_MOUNT = "/mnt/stateful_partition"


@dataclass(frozen=True)
class PartitionLayout:
    stateful: int = 1
    kernel: int = 6
    root: int = 7

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "PartitionLayout":
        return cls(
            stateful=int(cfg.get("stateful_partition_index", 1)),
            kernel=int(cfg.get("kernel_partition_index", 6)),
            root=int(cfg.get("root_partition_index", 7)),
        )


@dataclass(frozen=True)
class PartitionResult:
    """What later phases consume, whichever provisioning path ran."""

    disk: str
    kernel: str
    rootfs: str
    reboot_required: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {"disk": self.disk, "kernel": self.kernel, "rootfs": self.rootfs}


def _result(disk: str, layout: PartitionLayout, *, reboot_required: bool = False) -> PartitionResult:
    return PartitionResult(
        disk=disk,
        kernel=partition_path(disk, layout.kernel),
        rootfs=partition_path(disk, layout.root),
        reboot_required=reboot_required,
    )


def fresh_root_sectors(total_sectors: int) -> int:
    return total_sectors - ROOT_A_BEGIN - GPT_RESERVE_SECTORS


@dataclass(frozen=True)
class FreshPartition:
    """Wipe `disk` and lay out KERN-A + ROOT-A from scratch."""

    disk: str
    layout: PartitionLayout = PartitionLayout()

    def apply(self, *, policy: RetryPolicy = DEFAULT_POLICY, dry_run: bool = False) -> PartitionResult:
        disk = self.disk
        total = disk_size_sectors(disk, dry_run=dry_run)
        root_size = fresh_root_sectors(total)
        if root_size <= 0 and not dry_run:
            raise RuntimeError(f"{disk} is too small ({total} sectors) for a kernel and root partition")

        logger.info("Creating new partition table on %s (%s sectors, ROOT-A=%s sectors)", disk, total, root_size)
        cgpt.create_table(disk, dry_run=dry_run)
        cgpt.add_partition(
            disk,
            self.layout.kernel,
            begin=KERN_A_BEGIN,
            size=KERNEL_SECTORS,
            successful=1,
            priority=5,
            label="KERN-A",
            type_="kernel",
            dry_run=dry_run,
        )
        cgpt.add_partition(
            disk,
            self.layout.root,
            begin=ROOT_A_BEGIN,
            size=root_size,
            label="ROOT-A",
            type_="rootfs",
            dry_run=dry_run,
        )
        run_cmd(["sync"], dry_run=dry_run)

        reread_partition_table(disk, policy=policy, dry_run=dry_run)
        r = run_cmd(["partx", "-a", disk], check=False, dry_run=dry_run)
        if not r.ok:
            logger.warning("partx failed for %s, might need manual intervention", disk)

        run_cmd(["crossystem", "dev_boot_usb=1"], dry_run=dry_run)
        return _result(disk, self.layout)


def max_size_gb(stateful_sectors: int) -> int:
    return stateful_sectors // SECTORS_PER_GB


def parse_size_gb(text: str, max_gb: int) -> int:
    """Validate operator input; ValueError carries the message to show."""

    text = text.strip()
    if not text.isdigit():
        raise ValueError("Numbers only please...")
    size = int(text)
    if size < MIN_SIZE_GB or size > max_gb:
        raise ValueError(f"That number is out of range. Enter a number {MIN_SIZE_GB} through {max_gb}")
    return size


def prompt_size_gb(max_gb: int, *, preset: Optional[Any] = None) -> int:
    """Ask until a valid size is given. A preset answer is validated the same way."""

    recommended = max_gb - 1
    while True:
        if preset is not None:
            answer, preset = str(preset), None
        else:
            answer = ask(
                "Enter the size in gigabytes you want to reserve for Ubuntu Server. "
                f"Acceptable range is {MIN_SIZE_GB} to {max_gb}, recommended max is {recommended}: "
            )
        try:
            return parse_size_gb(answer, max_gb)
        except ValueError as e:
            logger.info("Rejected size %r: %s", answer, e)
            print(f"\n{e}\n")


@dataclass(frozen=True)
class ResizePlan:
    stateful_begin: int
    stateful_size: int
    kernel_begin: int
    kernel_size: int
    root_begin: int
    root_size: int


def plan_resize(*, stateful_begin: int, stateful_sectors: int, size_gb: int) -> ResizePlan:
    """Shrink STATE and carve KERN-C + ROOT-C out of its tail."""

    root_size = size_gb * SECTORS_PER_GB
    stateful_size = stateful_sectors - root_size - KERNEL_SECTORS
    if stateful_size <= 0:
        raise RuntimeError(f"{size_gb} GB does not fit in the stateful partition ({stateful_sectors} sectors)")
    kernel_begin = stateful_begin + stateful_size
    return ResizePlan(
        stateful_begin=stateful_begin,
        stateful_size=stateful_size,
        kernel_begin=kernel_begin,
        kernel_size=KERNEL_SECTORS,
        root_begin=kernel_begin + KERNEL_SECTORS,
        root_size=root_size,
    )


@dataclass(frozen=True)
class ResizeInPlace:
    """Use (and if needed create) KERN-C/ROOT-C on the internal boot disk."""

    disk: str
    layout: PartitionLayout = PartitionLayout()

    def needs_resize(self, *, dry_run: bool = False) -> bool:
        kern = cgpt.show_field(self.disk, self.layout.kernel, "size", dry_run=dry_run)
        root = cgpt.show_field(self.disk, self.layout.root, "size", dry_run=dry_run)
        logger.info("Existing sizes on %s: kernel=%s root=%s sectors", self.disk, kern, root)
        # Stock images ship 1-sector placeholders.
        return kern == 1 or root == 1

    def apply(
        self,
        *,
        size_gb: Optional[Any] = None,
        policy: RetryPolicy = DEFAULT_POLICY,
        dry_run: bool = False,
        choose_size: Callable[..., int] = prompt_size_gb,
    ) -> PartitionResult:
        disk = self.disk
        if not self.needs_resize(dry_run=dry_run):
            logger.info("KERN-C/ROOT-C on %s are already sized; using them", disk)
            return _result(disk, self.layout)

        state_sectors = cgpt.show_field(disk, self.layout.stateful, "size", dry_run=dry_run)
        max_gb = max_size_gb(state_sectors)
        if max_gb < MIN_SIZE_GB:
            raise RuntimeError(f"Stateful partition on {disk} only holds {max_gb} GB; at least {MIN_SIZE_GB} GB needed")

        chosen = choose_size(max_gb, preset=size_gb)
        plan = plan_resize(
            stateful_begin=cgpt.show_field(disk, self.layout.stateful, "begin", dry_run=dry_run),
            stateful_sectors=state_sectors,
            size_gb=chosen,
        )
        logger.info("Resize plan for %s: %s", disk, plan)

        print(
            "\nModifying partition table to make room for Ubuntu Server.\n"
            "Your Chromebook will reboot, wipe the ROOT-C/KERN-C partitions, and then\n"
            "you should re-run this installer...\n"
        )

        umount_with_retry(STATEFUL_MOUNT, policy=policy, dry_run=dry_run)

        # stateful first, then kernel, then root
        cgpt.add_partition(
            disk,
            self.layout.stateful,
            begin=plan.stateful_begin,
            size=plan.stateful_size,
            label="STATE",
            dry_run=dry_run,
        )
        cgpt.add_partition(
            disk,
            self.layout.kernel,
            begin=plan.kernel_begin,
            size=plan.kernel_size,
            label="KERN-C",
            dry_run=dry_run,
        )
        cgpt.add_partition(
            disk,
            self.layout.root,
            begin=plan.root_begin,
            size=plan.root_size,
            label="ROOT-C",
            dry_run=dry_run,
        )
        run_cmd(["sync"], dry_run=dry_run)
        reread_partition_table(disk, policy=policy, dry_run=dry_run)

        return _result(disk, self.layout, reboot_required=True)
