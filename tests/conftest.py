import subprocess
from typing import Any, Callable, Dict, List, Tuple, Union

import pytest

from chrubuntu_installer.install_config import build_config
from chrubuntu_installer.lib import command, retry
from chrubuntu_installer.state_store import ensure_defaults

Reply = Tuple[int, str, str]


class FakeSystem:
    """Stands in for subprocess.run: scripted replies by argv prefix, every call recorded."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self._replies: List[Tuple[Tuple[str, ...], Union[Reply, Callable[[List[str]], Reply]]]] = []

    def reply(self, *prefix: str, stdout: str = "", returncode: int = 0, stderr: str = "") -> None:
        # Later registrations win over earlier ones.
        self._replies.insert(0, (prefix, (returncode, stdout, stderr)))

    def on(self, *prefix: str, fn: Callable[[List[str]], Reply]) -> None:
        self._replies.insert(0, (prefix, fn))

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        for prefix, reply in self._replies:
            if tuple(argv[: len(prefix)]) == prefix:
                rc, out, err = reply(argv) if callable(reply) else reply
                return subprocess.CompletedProcess(argv, rc, out, err)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def ran(self, *prefix: str) -> bool:
        return any(tuple(c[: len(prefix)]) == prefix for c in self.calls)

    def commands(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture
def fake_system(monkeypatch):
    fake = FakeSystem()
    monkeypatch.setattr(command.subprocess, "run", fake)
    return fake


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps: List[float] = []
    monkeypatch.setattr(retry.time, "sleep", sleeps.append)
    return sleeps


@pytest.fixture
def answers(monkeypatch, fake_system):
    """Feed prompt answers; each prompt records how many commands had run by then."""

    asked: List[Dict[str, Any]] = []

    def _feed(*values: str):
        queue = list(values)

        def _input(prompt=""):
            assert queue, f"unexpected prompt: {prompt}"
            asked.append({"prompt": prompt, "calls_before": len(fake_system.calls)})
            return queue.pop(0)

        monkeypatch.setattr("builtins.input", _input)
        return asked

    return _feed


@pytest.fixture
def make_state(tmp_path):
    def _make(**overrides):
        cli = {
            "assume_yes": True,
            "mount_point": str(tmp_path / "urfs"),
            "download_dir": str(tmp_path / "dl"),
            "kernel_config_path": str(tmp_path / "kernel-config-server"),
        }
        cli.update(overrides)
        return ensure_defaults({"config": build_config(cli_overrides=cli)})

    return _make
