import pytest

from chrubuntu_installer.lib.command import cmd_output, fmt_argv, run_cmd


def test_run_cmd_captures_output(fake_system):
    fake_system.reply("crossystem", "mainfw_type", stdout="developer\n")

    r = run_cmd(["crossystem", "mainfw_type"])

    assert r.ok
    assert r.stdout == "developer\n"
    assert fake_system.calls == [["crossystem", "mainfw_type"]]


def test_run_cmd_raises_on_failure(fake_system):
    fake_system.reply("mkfs.ext4", returncode=1, stderr="device busy")

    with pytest.raises(RuntimeError) as e:
        run_cmd(["mkfs.ext4", "-F", "/dev/sdb7"])

    assert "(1)" in str(e.value)
    assert "device busy" in str(e.value)


def test_run_cmd_unchecked_failure_is_returned(fake_system):
    fake_system.reply("partx", returncode=1)

    r = run_cmd(["partx", "-a", "/dev/sdb"], check=False)

    assert not r.ok
    assert r.returncode == 1


def test_dry_run_does_not_execute(fake_system):
    r = run_cmd(["cgpt", "create", "/dev/sdb"], dry_run=True)

    assert r.ok
    assert fake_system.calls == []


def test_cmd_output_strips(fake_system):
    fake_system.reply("rootdev", stdout="/dev/mmcblk0p3\n")

    assert cmd_output(["rootdev", "-s"]) == "/dev/mmcblk0p3"


def test_fmt_argv_quotes():
    assert fmt_argv(["echo", "a b"]) == "echo 'a b'"
