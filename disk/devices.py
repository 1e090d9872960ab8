from __future__ import annotations
import json
from dataclasses import dataclass
from typing import List
from pipeline.commands import CommandError, run_cmd
from logger import log

GIB = 1024 ** 3
TIB = GIB * 1024
MIN_DISK_BYTES = 1_000_000_000
SKIP_PREFIXES = ("loop", "ram", "zram")


@dataclass
class BlockDevice:
    name: str           # "sda", "nvme0n1"
    path: str           # "/dev/sda"
    size_bytes: int
    size_human: str     # "476.9 GiB"
    model: str

    def display_str(self) -> str:
        return f"{self.path:<16} {self.size_human:>10}  {self.model}"


def format_bytes(size: int) -> str:
    if size >= TIB:
        return f"{size / TIB:.1f} TiB"
    return f"{size / GIB:.1f} GiB"


def parse_lsblk(payload: str) -> List[BlockDevice]:
    """Turn `lsblk --json` output into installable disks."""
    data = json.loads(payload)
    devices: List[BlockDevice] = []
    for dev in data.get("blockdevices") or []:
        name = dev.get("name")
        if not name:
            continue
        try:
            size = int(dev.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        if size < MIN_DISK_BYTES or name.startswith(SKIP_PREFIXES):
            continue
        devices.append(BlockDevice(
            name=name,
            path=f"/dev/{name}",
            size_bytes=size,
            size_human=format_bytes(size),
            model=(dev.get("model") or "Unknown").strip(),
        ))
    return devices


def list_block_devices() -> List[BlockDevice]:
    """
    Return whole disks (no partitions) via lsblk.
    Raises CommandError when lsblk fails or prints something unparsable.
    """
    out = run_cmd("lsblk", ["-d", "-n", "-b", "-o", "NAME,SIZE,MODEL", "--json"])
    try:
        devices = parse_lsblk(out)
    except (ValueError, TypeError, AttributeError) as e:
        raise CommandError(f"Failed to parse lsblk output: {e}") from e
    log.info("Found %d installable disks", len(devices))
    return devices
