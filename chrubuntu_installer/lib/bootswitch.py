from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

from .provision import write_file

logger = logging.getLogger(__name__)

TOGGLE_DIR = "/usr/local/sbin"


@dataclass(frozen=True)
class BootFlags:
    priority: int
    successful: int


CHROMEOS_FLAGS = BootFlags(priority=0, successful=0)
UBUNTU_FLAGS = BootFlags(priority=5, successful=1)


def render_toggle_script(disk: str, index: int, flags: BootFlags, *, target: str) -> str:
    return "\n".join(
        [
            "#!/bin/bash",
            f"# Set {target} as default boot",
            f"sudo cgpt add -i {index} -P {flags.priority} -S {flags.successful} {disk}",
            f'echo "Next boot will be {target}. Rebooting..."',
            "sudo reboot",
            "",
        ]
    )


def toggle_scripts(disk: str, index: int) -> Dict[str, str]:
    return {
        "boot2chromeos": render_toggle_script(disk, index, CHROMEOS_FLAGS, target="ChromeOS"),
        "boot2ubuntu": render_toggle_script(disk, index, UBUNTU_FLAGS, target="Ubuntu Server"),
    }


def install_toggle_scripts(target_root: str, disk: str, index: int, *, dry_run: bool = False) -> None:
    for name, body in toggle_scripts(disk, index).items():
        p = write_file(target_root, f"{TOGGLE_DIR}/{name}", body, mode=0o755, dry_run=dry_run)
        logger.info("Installed boot toggle %s", p)
