from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.command import run_cmd
from ..lib.prompt import pause
from ..state_store import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def recovery_command(target_disk: str = "") -> str:
    argv = ["chrubuntu-installer"]
    if target_disk:
        argv.append(target_disk)
    argv += ["--start-at", "50_repack_kernel", "--stop-after", "50_repack_kernel"]
    return " ".join(argv)


def completion_banner(
    *, version: str, username: str, password: str, disk: str, index: int, kernel_config: str, target_disk: str = ""
) -> str:
    return f"""
Installation of Ubuntu Server {version} seems to be complete.

*** IMPORTANT ***
- Default user created: {username}
- Default password: {password}  <--- CHANGE THIS AFTER FIRST LOGIN!!!
- SSH server is installed and enabled.

If Ubuntu Server fails to boot:
1. Power off your Chromebook completely.
2. Turn it back on to return to ChromeOS.
3. Review the boot parameters in {kernel_config} and adjust if necessary.
4. Re-run the kernel repacking step: {recovery_command(target_disk)}

To make Ubuntu Server the default boot option (after confirming it works):
  Inside Ubuntu, run: sudo /usr/local/sbin/boot2ubuntu
To revert to ChromeOS:
  Inside Ubuntu, run: sudo /usr/local/sbin/boot2chromeos
  Or, from ChromeOS shell: sudo cgpt add -i {index} -P 0 -S 0 {disk}

We're now ready to attempt to boot Ubuntu Server!
"""


class FinalizeRebootStep:
    step_id = "90_finalize_reboot"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.get("execution") or {}
        parts = exe.get("partitions") or {}
        dry_run = bool(cfg.get("dry_run", False))

        logger.info("Finalize summary: %s", exe.get("decisions") or {})
        if cfg.get("password") == DEFAULT_CONFIG["password"]:
            logger.warning(
                "User %r was created with the built-in default password; change it after the first login",
                cfg.get("username"),
            )

        print(
            completion_banner(
                version=str(cfg["ubuntu_version"]),
                username=str(cfg["username"]),
                password=str(cfg["password"]),
                disk=str(parts.get("disk")),
                index=int(cfg["kernel_partition_index"]),
                kernel_config=str(cfg["kernel_config_path"]),
                target_disk=str(cfg.get("target_disk") or ""),
            )
        )

        if bool(cfg.get("finalize_reboot", True)):
            pause(
                "Press [Enter] to reboot and attempt to boot Ubuntu Server...",
                assume_yes=bool(cfg.get("assume_yes", False)),
            )
            run_cmd(["reboot"], dry_run=dry_run)

        return state
