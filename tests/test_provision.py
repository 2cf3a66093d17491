from chrubuntu_installer.lib.provision import render_hosts, render_provision_script, write_file


def test_provision_script_defaults():
    script = render_provision_script(username="serveruser", password="serverpassword")
    lines = script.splitlines()

    assert lines[:3] == ["#!/bin/bash", "set -e", "export DEBIAN_FRONTEND=noninteractive"]
    for expected in [
        "apt-get update",
        "apt-get -y install ubuntu-minimal",
        "apt-get -y install ubuntu-server",
        "apt-get -y install openssh-server",
        "useradd -m -s /bin/bash serveruser",
        "echo serveruser:serverpassword | chpasswd",
        "usermod -aG sudo serveruser",
        "systemctl enable ssh",
        "apt-get -y autoremove",
        "apt-get -y clean",
    ]:
        assert expected in lines
    # packages are in place before the user and service are set up
    assert lines.index("apt-get -y install openssh-server") < lines.index("systemctl enable ssh")


def test_provision_script_quotes_password_and_adds_packages():
    script = render_provision_script(
        username="admin",
        password="it's $ecret",
        metapackage="ubuntu-server-minimal",
        extra_packages=["vim", "htop"],
    )

    assert "echo 'admin:it'\"'\"'s $ecret' | chpasswd" in script
    assert "apt-get -y install ubuntu-server-minimal" in script
    assert "apt-get -y install vim htop" in script


def test_render_hosts():
    hosts = render_hosts("ubuntu-server")

    assert hosts.splitlines()[0] == "127.0.0.1   localhost ubuntu-server"
    assert "ff02::2     ip6-allrouters" in hosts


def test_write_file(tmp_path):
    p = write_file(str(tmp_path), "/etc/hostname", "ubuntu-server\n", mode=0o600)

    assert p == tmp_path / "etc/hostname"
    assert p.read_text() == "ubuntu-server\n"
    assert p.stat().st_mode & 0o777 == 0o600
