# tests/conftest.py
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from config import InstallerConfig
from disk.devices import BlockDevice
from state import WizardState
from wizard import Wizard

FAKE_DISKS = [
    BlockDevice("sda", "/dev/sda", 500 * 1024 ** 3, "500.0 GiB", "Samsung SSD"),
    BlockDevice("nvme0n1", "/dev/nvme0n1", 1024 ** 4, "1.0 TiB", "WD Black"),
]


def make_repo(root: Path) -> Path:
    """Minimal nixos-dots layout: two hosts, modules, HM modules, packages."""
    m = root / "modules"
    (m / "hosts" / "desktop").mkdir(parents=True)
    (m / "hosts" / "desktop" / "_hardware-configuration.nix").write_text("{ }")
    (m / "hosts" / "laptop").mkdir()
    (m / "hosts" / "wsl-box").mkdir()
    (m / "nixosModules").mkdir()
    for name in ("audio", "gaming", "home-base", "wsl"):
        (m / "nixosModules" / f"{name}.nix").write_text("{ }")
    (m / "nixosModules" / "desktop").mkdir()
    (m / "nixosModules" / "desktop" / "default.nix").write_text("{ }")
    (m / "homeManagerModules").mkdir()
    for name in ("home", "home-wsl", "git", "neovim", "packages-extra"):
        (m / "homeManagerModules" / f"{name}.nix").write_text("{ }")
    (m / "packages").mkdir()
    for name in ("dev", "media", "wsl-tools"):
        (m / "packages" / f"{name}.nix").write_text("{ }")
    (root / "flake.nix").write_text("{ }")
    return root


class SyncSpawn:
    """Stand-in for spawn_worker that records the call instead of threading."""

    def __init__(self):
        self.calls = []

    def __call__(self, target, shared, *args, name="pipeline"):
        self.calls.append((target, shared, args, name))


@pytest.fixture
def state():
    return WizardState()


@pytest.fixture
def repo(tmp_path):
    return make_repo(tmp_path / "dots")


@pytest.fixture
def spawn():
    return SyncSpawn()


@pytest.fixture
def wizard(repo, spawn):
    w = Wizard(
        repo,
        config=InstallerConfig(),
        list_disks=MagicMock(return_value=list(FAKE_DISKS)),
        set_password=MagicMock(),
        reboot=MagicMock(),
        spawn=spawn,
        install_log=MagicMock(),
    )
    w.start()
    return w
