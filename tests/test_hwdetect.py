import pytest

from chrubuntu_installer.lib import hwdetect
from chrubuntu_installer.lib.hwdetect import UnsupportedPlatformError, detect_arch, firmware_type, resolve_arch


@pytest.mark.parametrize(
    "machine,ubuntu_arch,vbutil_arch",
    [
        ("x86_64", "amd64", "x86"),
        ("i686", "i386", "x86"),
        ("armv7l", "armhf", "arm"),
    ],
)
def test_resolve_arch(machine, ubuntu_arch, vbutil_arch):
    info = resolve_arch(machine)

    assert info.ubuntu_arch == ubuntu_arch
    assert info.vbutil_arch == vbutil_arch


@pytest.mark.parametrize("machine", ["aarch64", "riscv64", "ppc64le", "", "X86_64"])
def test_unsupported_arch(machine):
    with pytest.raises(UnsupportedPlatformError):
        resolve_arch(machine)


def test_detect_arch_uses_platform(monkeypatch):
    monkeypatch.setattr(hwdetect.platform, "machine", lambda: "armv7l")

    assert detect_arch().ubuntu_arch == "armhf"
    assert detect_arch("x86_64").ubuntu_arch == "amd64"


def test_firmware_type(fake_system):
    fake_system.reply("crossystem", "mainfw_type", stdout="normal\n")

    assert firmware_type() == "normal"
