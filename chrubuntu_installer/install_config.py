from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .state_store import DEFAULT_CONFIG

_USERNAME = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")


def load_install_config(path: str) -> Dict[str, Any]:
    """Read operator overrides from a YAML mapping.

    Keys are the ones listed in state_store.DEFAULT_CONFIG, e.g.:

        ubuntu_version: "22.04"
        hostname: lab-chromebook
        username: admin
        password: change-me
        extra_packages: [vim, htop]
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("install config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    unknown = sorted(set(raw) - set(DEFAULT_CONFIG))
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    return raw


def validate_config(cfg: Dict[str, Any]) -> None:
    username = str(cfg.get("username") or "")
    if not _USERNAME.match(username):
        raise ValueError(f"Invalid username: {username!r}")
    if not str(cfg.get("password") or ""):
        raise ValueError("password must not be empty")
    if not str(cfg.get("hostname") or "").strip():
        raise ValueError("hostname must not be empty")

    extra = cfg.get("extra_packages") or []
    if not isinstance(extra, list) or not all(isinstance(x, str) for x in extra):
        raise ValueError("extra_packages must be a list of package names")

    kern = int(cfg["kernel_partition_index"])
    root = int(cfg["root_partition_index"])
    if kern == root:
        raise ValueError("kernel_partition_index and root_partition_index must differ")

    if int(cfg.get("retry_attempts", 1)) < 1:
        raise ValueError("retry_attempts must be at least 1")


def build_config(
    *,
    file_overrides: Optional[Dict[str, Any]] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """defaults <- YAML file <- command line (None on the command line means 'not given')."""

    cfg = dict(DEFAULT_CONFIG)
    cfg["extra_packages"] = list(DEFAULT_CONFIG["extra_packages"])
    cfg.update(file_overrides or {})
    cfg.update({k: v for k, v in (cli_overrides or {}).items() if v is not None})
    validate_config(cfg)
    return cfg
