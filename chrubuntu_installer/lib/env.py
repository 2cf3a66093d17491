from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    mount_point: str = "/tmp/urfs"
    download_dir: str = "/tmp/ubuntu_dl"
    kernel_config: str = "/tmp/kernel-config-server"
    state_default: str = "/usr/local/chrubuntu-installer/state.json"
    log_default: str = "/var/log/chrubuntu-installer.log"


PATHS = Paths()
