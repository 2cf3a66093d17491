"""Ubuntu Server installer for Chrome OS devices (state-driven).

Phases:
- Preflight: developer firmware, powerd, platform
- Partitioning: fresh disk or KERN-C/ROOT-C carved out of STATE
- Root filesystem: ubuntu-base, chroot provisioning
- Kernel: running kernel re-signed with a new command line
- Boot switch: GPT priority and toggle scripts
"""

__all__ = []
