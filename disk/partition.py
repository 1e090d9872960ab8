from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence
from pipeline.commands import MOUNT_ROOT, run_cmd
from logger import log

EFI_SIZE_MB = 512
START_OFFSET_MB = 1   # first partition starts at 1 MiB for alignment


class FsType(Enum):
    FAT32 = "vfat"
    EXT4 = "ext4"
    BTRFS = "btrfs"
    SWAP = "swap"

    @property
    def display_name(self) -> str:
        return {
            FsType.FAT32: "FAT32 (EFI)",
            FsType.EXT4: "ext4",
            FsType.BTRFS: "Btrfs",
            FsType.SWAP: "swap",
        }[self]

    @property
    def parted_flag(self) -> str:
        return {
            FsType.FAT32: "fat32",
            FsType.EXT4: "ext4",
            FsType.BTRFS: "btrfs",
            FsType.SWAP: "linux-swap",
        }[self]


FS_CHOICES: List[FsType] = [FsType.FAT32, FsType.EXT4, FsType.BTRFS, FsType.SWAP]


@dataclass
class PartitionPlan:
    label: str
    mount_point: str            # "/", "/boot", "swap" or an absolute path
    size_mb: Optional[int]      # None = fill the remaining space
    fs_type: FsType

    @property
    def size_label(self) -> str:
        if self.size_mb is None:
            return "remaining"
        if self.size_mb % 1024 == 0:
            return f"{self.size_mb // 1024} GiB"
        return f"{self.size_mb} MiB"


def label_for_mount(mount: str) -> str:
    if mount == "/":
        return "root"
    if mount == "/boot":
        return "EFI"
    if mount == "swap":
        return "swap"
    return mount.lstrip("/").replace("/", "-")


def full_disk_plan(swap_gib: int) -> List[PartitionPlan]:
    """EFI (512 MiB) + optional swap + root filling the rest of the disk."""
    plan = [PartitionPlan("EFI", "/boot", EFI_SIZE_MB, FsType.FAT32)]
    if swap_gib > 0:
        plan.append(PartitionPlan("swap", "swap", swap_gib * 1024, FsType.SWAP))
    plan.append(PartitionPlan("root", "/", None, FsType.EXT4))
    return plan


def root_partition_count(plan: Sequence[PartitionPlan]) -> int:
    return sum(1 for p in plan if p.mount_point == "/")


def partition_device(disk: str, number: int) -> str:
    """/dev/sda + 1 -> /dev/sda1, /dev/nvme0n1 + 1 -> /dev/nvme0n1p1."""
    if "nvme" in disk or "mmcblk" in disk:
        return f"{disk}p{number}"
    return f"{disk}{number}"


def partition_disk(disk: str, plan: Sequence[PartitionPlan]) -> None:
    """Wipe `disk`, write a GPT label and create the planned partitions."""
    log.info("Partitioning %s with %d partitions", disk, len(plan))
    run_cmd("wipefs", ["-a", "-f", disk])
    run_cmd("parted", ["-s", disk, "mklabel", "gpt"])

    start_mb = START_OFFSET_MB
    for number, part in enumerate(plan, 1):
        end = "100%" if part.size_mb is None else f"{start_mb + part.size_mb}MiB"
        run_cmd("parted", [
            "-s", disk, "mkpart", part.label, part.fs_type.parted_flag,
            f"{start_mb}MiB", end,
        ])
        if part.fs_type is FsType.FAT32 and part.mount_point == "/boot":
            run_cmd("parted", ["-s", disk, "set", str(number), "esp", "on"])
        if part.size_mb is not None:
            start_mb += part.size_mb


def _format(dev: str, fs_type: FsType) -> None:
    if fs_type is FsType.FAT32:
        run_cmd("mkfs.fat", ["-F", "32", dev])
    elif fs_type is FsType.EXT4:
        run_cmd("mkfs.ext4", ["-F", dev])
    elif fs_type is FsType.BTRFS:
        run_cmd("mkfs.btrfs", ["-f", dev])
    else:
        run_cmd("mkswap", [dev])


def format_and_mount(disk: str, plan: Sequence[PartitionPlan]) -> None:
    """
    Format every partition, then bring them up under MOUNT_ROOT.

    Order: root mount (the other mount points live inside it), swap
    activation, then the remaining mount points in plan order.
    """
    devices = [(partition_device(disk, n), part) for n, part in enumerate(plan, 1)]
    for dev, part in devices:
        _format(dev, part.fs_type)

    for dev, part in devices:
        if part.mount_point == "/" and part.fs_type is not FsType.SWAP:
            run_cmd("mount", [dev, MOUNT_ROOT])

    for dev, part in devices:
        if part.fs_type is FsType.SWAP:
            run_cmd("swapon", [dev])

    for dev, part in devices:
        if part.fs_type is FsType.SWAP or part.mount_point in ("/", "swap"):
            continue
        target = f"{MOUNT_ROOT}{part.mount_point}"
        run_cmd("mkdir", ["-p", target])
        run_cmd("mount", [dev, target])
