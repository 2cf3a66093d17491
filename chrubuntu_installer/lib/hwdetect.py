from __future__ import annotations

import logging
import platform
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .command import cmd_output

logger = logging.getLogger(__name__)


class UnsupportedPlatformError(RuntimeError):
    pass


@dataclass(frozen=True)
class ArchInfo:
    machine: str
    ubuntu_arch: str  # package repository arch
    vbutil_arch: str  # vbutil_kernel --arch

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


_ARCHES = {
    "x86_64": ArchInfo(machine="x86_64", ubuntu_arch="amd64", vbutil_arch="x86"),
    "i686": ArchInfo(machine="i686", ubuntu_arch="i386", vbutil_arch="x86"),
    "armv7l": ArchInfo(machine="armv7l", ubuntu_arch="armhf", vbutil_arch="arm"),
}


def resolve_arch(machine: str) -> ArchInfo:
    info = _ARCHES.get(machine)
    if info is None:
        raise UnsupportedPlatformError(f"This installer doesn't know how to install Ubuntu Server on {machine!r}")
    return info


def detect_arch(override: Optional[str] = None) -> ArchInfo:
    machine = override or platform.machine()
    return resolve_arch(machine)


def firmware_type(*, dry_run: bool = False) -> str:
    """Return the main firmware type reported by crossystem (developer|normal|recovery|...)."""

    if dry_run:
        return "developer"
    return cmd_output(["crossystem", "mainfw_type"])
