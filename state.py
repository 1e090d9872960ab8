from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from disk.devices import BlockDevice
from disk.partition import PartitionPlan
from nix.scan import HostPreset, NixModule


@dataclass
class UserEntry:
    username: str
    password: str = ""          # cleared again once applied in the target
    hm_modules: List[NixModule] = field(default_factory=list)
    package_modules: List[NixModule] = field(default_factory=list)
    # False when modules/hosts/<host>/user-<name>.nix already exists
    needs_module_selection: bool = True


class PartitionMode(Enum):
    FULL_DISK = "full"
    CUSTOM = "custom"


@dataclass
class WizardState:
    # Repository clone
    clone_log: List[str] = field(default_factory=list)
    clone_phase: str = ""
    clone_percent: int = 0
    clone_error: Optional[str] = None
    clone_done: bool = False

    # Preset selection ("Custom" is the extra last item)
    presets: List[HostPreset] = field(default_factory=list)
    preset_cursor: int = 0
    is_custom: bool = False

    # Host
    host_name: str = ""
    host_name_input: str = ""
    nixos_modules: List[NixModule] = field(default_factory=list)
    system_packages: List[NixModule] = field(default_factory=list)

    # Users
    users: List[UserEntry] = field(default_factory=list)
    current_username: str = ""
    another_user_cursor: int = 0          # 0 = yes, 1 = no

    # Per-user module selection
    hm_user_index: int = 0
    hm_modules: List[NixModule] = field(default_factory=list)
    user_pkg_modules: List[NixModule] = field(default_factory=list)

    # Disk
    disks: List[BlockDevice] = field(default_factory=list)
    disk_cursor: int = 0
    selected_disk: Optional[BlockDevice] = None

    # Partitioning
    partition_mode: PartitionMode = PartitionMode.FULL_DISK
    partition_mode_cursor: int = 0        # 0 = full disk, 1 = custom
    swap_size_input: str = "4"
    partitions: List[PartitionPlan] = field(default_factory=list)
    part_mount_input: str = ""
    part_size_input: str = ""
    part_size_mb: Optional[int] = None
    part_fs_cursor: int = 0
    another_partition_cursor: int = 0     # 0 = yes, 1 = no

    # Confirm
    confirm_cursor: int = 0               # 0 = install, 1 = back
    accept_flake_config: bool = True

    # Installation
    install_log: List[str] = field(default_factory=list)
    install_progress: int = 0
    install_total: int = 9
    install_error: Optional[str] = None
    install_done: bool = False

    # Post-install passwords
    root_password: str = ""
    root_password_confirm: str = ""
    root_password_mismatch: bool = False
    password_user_index: int = 0
    current_password: str = ""
    current_password_confirm: str = ""
    password_mismatch: bool = False

    # Complete
    reboot_cursor: int = 0                # 0 = reboot, 1 = exit

    def preset_items(self) -> List[str]:
        return [p.name for p in self.presets] + ["Custom"]
