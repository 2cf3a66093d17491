"""Files seeded into the new root and the first-boot provisioning script."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

logger = logging.getLogger(__name__)

PROVISION_SCRIPT = "/install-ubuntu-server.sh"


def write_file(root: str, rel: str, contents: str, *, mode: int | None = None, dry_run: bool = False) -> Path:
    p = Path(root) / rel.lstrip("/")
    if dry_run:
        logger.info("Would write %s", str(p))
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        p.chmod(mode)
    return p


def render_hosts(hostname: str) -> str:
    return "\n".join(
        [
            f"127.0.0.1   localhost {hostname}",
            "::1         localhost ip6-localhost ip6-loopback",
            "fe00::0     ip6-localnet",
            "ff00::0     ip6-mcastprefix",
            "ff02::1     ip6-allnodes",
            "ff02::2     ip6-allrouters",
            "",
        ]
    )


def render_provision_script(
    *,
    username: str,
    password: str,
    metapackage: str = "ubuntu-server",
    extra_packages: list[str] | None = None,
) -> str:
    """Shell script run once inside the chroot.

    Installs the server metapackage and SSH, creates a sudo user and enables
    ssh at boot. `set -e` makes the first failing command abort the install.
    """

    lines = [
        "#!/bin/bash",
        "set -e",
        "export DEBIAN_FRONTEND=noninteractive",
        "",
        "apt-get update",
        "apt-get -y install ubuntu-minimal",
        f"apt-get -y install {metapackage}",
        "apt-get -y install openssh-server",
    ]
    if extra_packages:
        lines.append("apt-get -y install " + " ".join(extra_packages))
    lines += [
        "",
        f"useradd -m -s /bin/bash {username}",
        "echo " + shlex.quote(f"{username}:{password}") + " | chpasswd",
        f"usermod -aG sudo {username}",
        "",
        "systemctl enable ssh",
        "",
        "apt-get -y autoremove",
        "apt-get -y clean",
        "",
        'echo "Initial Ubuntu Server setup complete inside chroot."',
        "",
    ]
    return "\n".join(lines)
