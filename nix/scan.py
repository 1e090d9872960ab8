from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple
from logger import log

MODULE_SUBDIRS = ("nixosModules", "homeManagerModules", "packages", "hosts")


@dataclass
class HostPreset:
    name: str
    path: Path
    has_hardware_config: bool


@dataclass
class NixModule:
    name: str
    selected: bool = False


def _skip_nixos_module(name: str) -> bool:
    return name.startswith("home-") or name == "wsl"


def _skip_hm_module(name: str) -> bool:
    return name == "home" or name == "home-wsl" or name.startswith("packages-")


def discover_nix_files(directory: Path) -> List[Tuple[str, Path]]:
    """
    Return (module_name, path) for every .nix file below `directory`.

    The module name is the file stem; a default.nix stands for its parent
    directory. The first file found for a name wins.
    """
    if not directory.is_dir():
        return []
    seen = set()
    results: List[Tuple[str, Path]] = []
    for path in sorted(directory.rglob("*.nix")):
        if not path.is_file():
            continue
        name = path.stem
        if name == "default":
            name = path.parent.name
        if name in seen:
            continue
        seen.add(name)
        results.append((name, path))
    return results


class RepoScanner:
    """Discovers presets and modules in a nixos-dots style repository."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    @property
    def modules_dir(self) -> Path:
        return self.base_path / "modules"

    def validate_base_path(self) -> List[str]:
        if not self.modules_dir.is_dir():
            return [
                f"modules/ directory not found at '{self.base_path}'. "
                "Module scanning will not work."
            ]
        warnings = []
        for subdir in MODULE_SUBDIRS:
            d = self.modules_dir / subdir
            if not d.is_dir():
                warnings.append(f"modules/{subdir} directory not found at '{d}'")
        for w in warnings:
            log.warning("Repo layout: %s", w)
        return warnings

    def host_presets(self) -> List[HostPreset]:
        hosts_dir = self.modules_dir / "hosts"
        presets: List[HostPreset] = []
        try:
            entries = list(hosts_dir.iterdir())
        except OSError:
            return []
        for entry in entries:
            if not entry.is_dir():
                continue
            # WSL hosts are not installable presets
            if "wsl" in entry.name.lower():
                continue
            presets.append(HostPreset(
                name=entry.name,
                path=entry,
                has_hardware_config=(entry / "_hardware-configuration.nix").exists(),
            ))
        presets.sort(key=lambda p: p.name)
        log.info("Found %d host presets in %s", len(presets), hosts_dir)
        return presets

    def _scan(self, subdir: str, skip: Callable[[str], bool]) -> List[NixModule]:
        found = discover_nix_files(self.modules_dir / subdir)
        modules = [NixModule(name) for name, _ in found if not skip(name)]
        modules.sort(key=lambda m: m.name)
        return modules

    def nixos_modules(self) -> List[NixModule]:
        return self._scan("nixosModules", _skip_nixos_module)

    def hm_modules(self) -> List[NixModule]:
        return self._scan("homeManagerModules", _skip_hm_module)

    def package_modules(self) -> List[NixModule]:
        # The flake registers package sets as packages-<name>
        found = discover_nix_files(self.modules_dir / "packages")
        modules = [
            NixModule(f"packages-{name}")
            for name, _ in found
            if "wsl" not in name.lower()
        ]
        modules.sort(key=lambda m: m.name)
        return modules

    def user_config_exists(self, host_name: str, username: str) -> bool:
        path = self.modules_dir / "hosts" / host_name / f"user-{username}.nix"
        return path.exists()
