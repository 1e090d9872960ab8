from __future__ import annotations
import re
from typing import Iterable, Optional, Sequence, Tuple

_USERNAME_FIRST = re.compile(r"[a-z_]")
_USERNAME_REST = re.compile(r"[a-z0-9_-]*")

def validate_host_name(name: str) -> Tuple[bool, str]:
    if not name.strip():
        return False, "Host name cannot be empty"
    return True, ""

def validate_username(name: str, existing: Iterable[str] = ()) -> Tuple[bool, str]:
    name = name.strip()
    if not name:
        return False, "Username cannot be empty"
    if not (_USERNAME_FIRST.fullmatch(name[0]) and _USERNAME_REST.fullmatch(name[1:])):
        return False, (
            "Username must start with a lowercase letter or underscore and "
            "contain only lowercase letters, digits, '-' or '_'"
        )
    if name in set(existing):
        return False, "User already exists"
    return True, ""

def validate_mount_point(mount: str, used: Sequence[str] = ()) -> Tuple[bool, str]:
    mount = mount.strip()
    if not mount:
        return False, "Mount point cannot be empty"
    if mount != "swap" and not mount.startswith("/"):
        return False, "Mount point must start with '/' or be 'swap'"
    if mount != "swap" and mount in used:
        return False, f"Mount point {mount} is already used"
    return True, ""

def validate_password(password: str, what: str = "Password") -> Tuple[bool, str]:
    if not password:
        return False, f"{what} cannot be empty"
    return True, ""

def parse_swap_size(text: str) -> Tuple[Optional[int], str]:
    """
    Parse the full-disk swap size in GiB.
    Returns (gib, "") on success, 0 for empty input, (None, msg) on error.
    """
    text = text.strip()
    if not text:
        return 0, ""
    if not (text.isascii() and text.isdigit()):
        return None, (
            "Invalid swap size. Enter a whole number in GiB (e.g. 4) "
            "or leave empty for no swap."
        )
    return int(text), ""

def parse_partition_size(text: str) -> Tuple[bool, Optional[int], str]:
    """
    Parse a custom partition size in GiB and convert it to MiB.
    Returns (ok, size_mb, msg); empty input means "use remaining space"
    and yields (True, None, "").
    """
    text = text.strip()
    if not text:
        return True, None, ""
    if not (text.isascii() and text.isdigit()):
        return False, None, (
            "Invalid size. Enter a whole number in GiB or leave empty "
            "for remaining space."
        )
    gib = int(text)
    if gib == 0:
        return False, None, "Size must be greater than 0."
    return True, gib * 1024, ""

def validate_root_partition(mount_points: Sequence[str]) -> Tuple[bool, str]:
    count = sum(1 for m in mount_points if m == "/")
    if count == 0:
        return False, "No root (/) partition defined. Please go back and add one."
    if count > 1:
        return False, "More than one root (/) partition defined."
    return True, ""
