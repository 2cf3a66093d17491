from .step_10_preflight import PreflightStep
from .step_20_partition import PartitionStep
from .step_30_install_rootfs import InstallRootFSStep
from .step_40_configure_system import ConfigureSystemStep
from .step_50_repack_kernel import RepackKernelStep
from .step_60_boot_switch import BootSwitchStep
from .step_90_finalize_reboot import FinalizeRebootStep

__all__ = [
    "PreflightStep",
    "PartitionStep",
    "InstallRootFSStep",
    "ConfigureSystemStep",
    "RepackKernelStep",
    "BootSwitchStep",
    "FinalizeRebootStep",
]
