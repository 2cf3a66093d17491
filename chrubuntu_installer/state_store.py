from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .lib.env import PATHS
from .lib.kernel import DEV_KEYBLOCK, DEV_SIGNPRIVATE
from .lib.rootfs import DEFAULT_MIRROR

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "yaml":
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        if _detect_format(p) == "yaml":
            p.write_text(yaml.safe_dump(state, sort_keys=False), encoding="utf-8")
        else:
            p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    except OSError as e:
        # The stateful partition may already be unmounted (resize path).
        logger.warning("Could not save state to %s: %s", path, e)


DEFAULT_CONFIG: Dict[str, Any] = {
    "target_disk": None,
    "dry_run": False,
    "assume_yes": False,
    "size_gb": None,
    "arch": None,
    "ubuntu_version": "22.04",
    "ubuntu_mirror": DEFAULT_MIRROR,
    "ubuntu_metapackage": "ubuntu-server",
    "extra_packages": [],
    "hostname": "ubuntu-server",
    "username": "serveruser",
    "password": "serverpassword",
    "stateful_partition_index": 1,
    "kernel_partition_index": 6,
    "root_partition_index": 7,
    "kernel_root_offset": 1,
    "mount_point": PATHS.mount_point,
    "download_dir": PATHS.download_dir,
    "kernel_config_path": PATHS.kernel_config,
    "kernel_keyblock": DEV_KEYBLOCK,
    "kernel_signprivate": DEV_SIGNPRIVATE,
    "retry_attempts": 5,
    "retry_delay_s": 1.0,
    "finalize_reboot": True,
}


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding user values)."""

    state.setdefault("version", 1)
    state.setdefault("config", {})
    state.setdefault("hardware", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    for key, value in DEFAULT_CONFIG.items():
        cfg.setdefault(key, list(value) if isinstance(value, list) else value)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed
