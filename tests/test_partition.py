# tests/test_partition.py
from unittest.mock import patch, call

import pytest
from disk.partition import (
    FsType, PartitionPlan, full_disk_plan, label_for_mount,
    partition_device, partition_disk, format_and_mount, root_partition_count,
)


def test_full_disk_plan_with_swap():
    plan = full_disk_plan(4)
    assert [(p.label, p.mount_point, p.size_mb, p.fs_type) for p in plan] == [
        ("EFI", "/boot", 512, FsType.FAT32),
        ("swap", "swap", 4096, FsType.SWAP),
        ("root", "/", None, FsType.EXT4),
    ]


def test_full_disk_plan_without_swap():
    plan = full_disk_plan(0)
    assert [p.mount_point for p in plan] == ["/boot", "/"]
    assert root_partition_count(plan) == 1


@pytest.mark.parametrize("mount,label", [
    ("/", "root"), ("/boot", "EFI"), ("swap", "swap"), ("/var/lib", "var-lib"),
])
def test_label_for_mount(mount, label):
    assert label_for_mount(mount) == label


def test_partition_device_naming():
    assert partition_device("/dev/sda", 2) == "/dev/sda2"
    assert partition_device("/dev/nvme0n1", 1) == "/dev/nvme0n1p1"
    assert partition_device("/dev/mmcblk0", 3) == "/dev/mmcblk0p3"


def test_size_label():
    assert PartitionPlan("root", "/", None, FsType.EXT4).size_label == "remaining"
    assert PartitionPlan("EFI", "/boot", 512, FsType.FAT32).size_label == "512 MiB"
    assert PartitionPlan("home", "/home", 20480, FsType.BTRFS).size_label == "20 GiB"


def test_partition_disk_commands():
    with patch("disk.partition.run_cmd") as run:
        partition_disk("/dev/sda", full_disk_plan(2))
    assert run.call_args_list == [
        call("wipefs", ["-a", "-f", "/dev/sda"]),
        call("parted", ["-s", "/dev/sda", "mklabel", "gpt"]),
        call("parted", ["-s", "/dev/sda", "mkpart", "EFI", "fat32", "1MiB", "513MiB"]),
        call("parted", ["-s", "/dev/sda", "set", "1", "esp", "on"]),
        call("parted", ["-s", "/dev/sda", "mkpart", "swap", "linux-swap", "513MiB", "2561MiB"]),
        call("parted", ["-s", "/dev/sda", "mkpart", "root", "ext4", "2561MiB", "100%"]),
    ]


def test_format_and_mount_order():
    plan = [
        PartitionPlan("EFI", "/boot", 512, FsType.FAT32),
        PartitionPlan("swap", "swap", 2048, FsType.SWAP),
        PartitionPlan("home", "/home", 10240, FsType.BTRFS),
        PartitionPlan("root", "/", None, FsType.EXT4),
    ]
    with patch("disk.partition.run_cmd") as run:
        format_and_mount("/dev/nvme0n1", plan)
    names = [(c.args[0], c.args[1][-1] if c.args[1] else None) for c in run.call_args_list]
    assert names[:4] == [
        ("mkfs.fat", "/dev/nvme0n1p1"),
        ("mkswap", "/dev/nvme0n1p2"),
        ("mkfs.btrfs", "/dev/nvme0n1p3"),
        ("mkfs.ext4", "/dev/nvme0n1p4"),
    ]
    mounts = [c.args for c in run.call_args_list[4:]]
    assert mounts[0] == ("mount", ["/dev/nvme0n1p4", "/mnt"])
    assert mounts[1] == ("swapon", ["/dev/nvme0n1p2"])
    assert ("mkdir", ["-p", "/mnt/boot"]) in mounts
    assert ("mount", ["/dev/nvme0n1p3", "/mnt/home"]) in mounts
    assert mounts.index(("mkdir", ["-p", "/mnt/boot"])) > 1
