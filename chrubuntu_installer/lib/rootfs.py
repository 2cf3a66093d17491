from __future__ import annotations

import gzip
import logging
import zlib
from pathlib import Path

from .command import run_cmd

logger = logging.getLogger(__name__)

DEFAULT_MIRROR = "http://cdimage.ubuntu.com/ubuntu-base/releases"
TARBALL_NAME = "ubuntu-base.tar.gz"

_CHUNK = 1024 * 1024
_GZIP_MAGIC = b"\x1f\x8b"


def base_tarball_url(mirror: str, version: str, arch: str) -> str:
    return f"{mirror.rstrip('/')}/{version}/release/ubuntu-base-{version}-base-{arch}.tar.gz"


def download(url: str, dest: str, *, dry_run: bool = False) -> None:
    if not dry_run:
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
    run_cmd(["curl", "-L", "--fail", url, "-o", dest], dry_run=dry_run)


def is_valid_gzip(path: str) -> bool:
    """Read the whole stream; HTML error pages and truncated downloads fail here."""

    p = Path(path)
    if not p.is_file():
        return False
    with p.open("rb") as f:
        # empty downloads decompress to nothing without an error
        if f.read(len(_GZIP_MAGIC)) != _GZIP_MAGIC:
            return False
    try:
        with gzip.open(p, "rb") as f:
            while f.read(_CHUNK):
                pass
    except (OSError, EOFError, zlib.error):
        return False
    return True


def extract(tarball: str, target_root: str, *, dry_run: bool = False) -> None:
    # -p keeps the permissions recorded in the archive
    run_cmd(["tar", "-xzpf", tarball, "-C", target_root], dry_run=dry_run)
