import pytest

from chrubuntu_installer.lib.kernel import (
    DEV_KEYBLOCK,
    DEV_SIGNPRIVATE,
    build_cmdline,
    repack_kernel,
    running_kernel_partition,
    write_cmdline,
)


def test_build_cmdline():
    cmdline = build_cmdline("/dev/mmcblk0p7")

    assert cmdline == (
        "console=tty1 debug verbose root=/dev/mmcblk0p7 rootwait rw lsm.module_locking=0 init=/sbin/init"
    )


@pytest.mark.parametrize(
    "root,offset,expected",
    [
        ("/dev/mmcblk0p3", 1, "/dev/mmcblk0p2"),
        ("/dev/mmcblk0p5", 1, "/dev/mmcblk0p4"),
        ("/dev/sda3", 1, "/dev/sda2"),
        ("/dev/nvme0n1p5", 1, "/dev/nvme0n1p4"),
        ("/dev/sda13", 1, "/dev/sda12"),
        ("/dev/sda7", 2, "/dev/sda5"),
    ],
)
def test_running_kernel_partition(root, offset, expected):
    assert running_kernel_partition(root, offset=offset) == expected


@pytest.mark.parametrize("root", ["/dev/root", "", "/dev/sda1"])
def test_running_kernel_partition_invalid(root):
    with pytest.raises(RuntimeError):
        running_kernel_partition(root)


def test_write_cmdline(tmp_path):
    p = tmp_path / "kernel-config-server"

    write_cmdline(str(p), "root=/dev/sda7")

    assert p.read_text() == "root=/dev/sda7\n"


def test_repack_kernel_argv(fake_system):
    repack_kernel(
        target_kern="/dev/mmcblk0p6",
        old_blob="/dev/mmcblk0p2",
        config_path="/tmp/kernel-config-server",
        vbutil_arch="arm",
    )

    assert fake_system.calls == [
        [
            "vbutil_kernel",
            "--repack",
            "/dev/mmcblk0p6",
            "--oldblob",
            "/dev/mmcblk0p2",
            "--keyblock",
            DEV_KEYBLOCK,
            "--version",
            "1",
            "--signprivate",
            DEV_SIGNPRIVATE,
            "--config",
            "/tmp/kernel-config-server",
            "--arch",
            "arm",
        ]
    ]
