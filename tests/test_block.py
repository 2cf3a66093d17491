import pytest

from chrubuntu_installer.lib.block import (
    disk_size_sectors,
    is_mounted,
    mount_table,
    partition_path,
    reread_partition_table,
    umount_with_retry,
)

MOUNT_OUTPUT = """\
/dev/mmcblk0p1 on /mnt/stateful_partition type ext4 (rw,nosuid,nodev,noexec,relatime)
/dev/sdb70 on /media/removable/USB type ext4 (rw)
proc on /proc type proc (rw,nosuid,nodev,noexec,relatime)
"""


@pytest.mark.parametrize(
    "disk,n,expected",
    [
        ("/dev/sda", 7, "/dev/sda7"),
        ("/dev/sdb", 6, "/dev/sdb6"),
        ("/dev/mmcblk0", 7, "/dev/mmcblk0p7"),
        ("/dev/nvme0n1", 6, "/dev/nvme0n1p6"),
    ],
)
def test_partition_path(disk, n, expected):
    assert partition_path(disk, n) == expected


def test_mount_table(fake_system):
    fake_system.reply("mount", stdout=MOUNT_OUTPUT)

    assert mount_table() == [
        ("/dev/mmcblk0p1", "/mnt/stateful_partition"),
        ("/dev/sdb70", "/media/removable/USB"),
        ("proc", "/proc"),
    ]


def test_is_mounted_matches_device_or_mount_point_exactly(fake_system):
    fake_system.reply("mount", stdout=MOUNT_OUTPUT)

    assert is_mounted("/dev/mmcblk0p1")
    assert is_mounted("/mnt/stateful_partition")
    # /dev/sdb7 is a prefix of /dev/sdb70 but not mounted itself
    assert not is_mounted("/dev/sdb7")


def test_disk_size_sectors(fake_system):
    fake_system.reply("blockdev", "--getsz", stdout="104857600\n")

    assert disk_size_sectors("/dev/sdb") == 104857600


def test_disk_size_sectors_garbage(fake_system):
    fake_system.reply("blockdev", "--getsz", stdout="nope")

    with pytest.raises(RuntimeError):
        disk_size_sectors("/dev/sdb")


def test_reread_partition_table_retries_then_warns(fake_system, no_sleep, caplog):
    fake_system.reply("blockdev", "--rereadpt", returncode=1)

    assert not reread_partition_table("/dev/sdb")

    assert len(fake_system.commands("blockdev", "--rereadpt")) == 5
    assert "did not re-read" in caplog.text


def test_reread_partition_table_recovers(fake_system):
    results = iter([1, 1, 0])
    fake_system.on("blockdev", "--rereadpt", fn=lambda argv: (next(results), "", ""))

    assert reread_partition_table("/dev/sdb")
    assert len(fake_system.commands("blockdev", "--rereadpt")) == 3


def test_umount_with_retry_fails_hard_when_still_mounted(fake_system):
    fake_system.reply("umount", returncode=32, stderr="target is busy")
    fake_system.reply("mount", stdout=MOUNT_OUTPUT)

    with pytest.raises(RuntimeError, match="Failed to unmount /mnt/stateful_partition"):
        umount_with_retry("/mnt/stateful_partition")

    assert len(fake_system.commands("umount")) == 5


def test_umount_with_retry_accepts_already_unmounted(fake_system):
    # umount fails because nothing is mounted there any more
    fake_system.reply("umount", returncode=32)
    fake_system.reply("mount", stdout="proc on /proc type proc (rw)\n")

    umount_with_retry("/mnt/stateful_partition")
