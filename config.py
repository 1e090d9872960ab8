from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import List, Optional
import yaml
from logger import log

DEFAULT_CONFIG_PATH = Path("/etc/nixos-installer/config.yaml")
REPO_CONFIG_FILENAME = "config.yaml"
DEFAULT_THEME = "catppuccin-mocha"
THEMES = ["catppuccin-mocha", "nord", "dracula", "tokyo-night", "gruvbox"]
DEFAULT_BRANDING = "NixOS Installer"

_LIST_KEYS = ("hm_base_modules", "pre_install_hooks", "post_install_hooks")


@dataclass
class InstallerConfig:
    repo_url: Optional[str] = None
    theme: Optional[str] = None
    # Home Manager modules always imported for every user, never offered
    hm_base_modules: List[str] = field(default_factory=list)
    default_hostname: Optional[str] = None
    default_username: Optional[str] = None
    default_swap_size: Optional[str] = None
    branding_title: Optional[str] = None
    # Executables run before nixos-install / after it (before passwords)
    pre_install_hooks: List[str] = field(default_factory=list)
    post_install_hooks: List[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.branding_title or DEFAULT_BRANDING

    @classmethod
    def from_dict(cls, raw: dict) -> "InstallerConfig":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in raw.items():
            if key not in known:
                log.warning("Unknown config key '%s' ignored", key)
                continue
            if value is None:
                continue
            if key in _LIST_KEYS:
                if not isinstance(value, list):
                    raise ValueError(f"'{key}' must be a list")
                values[key] = [str(v) for v in value]
            else:
                values[key] = str(value)
        theme = values.get("theme")
        if theme is not None and theme not in THEMES:
            raise ValueError(f"unknown theme '{theme}'. Available: {', '.join(THEMES)}")
        return cls(**values)


def _read_yaml(path: Path) -> Optional[dict]:
    try:
        text = path.read_text()
    except OSError:
        return None
    raw = yaml.safe_load(text) or {}
    if not isinstance(raw, dict):
        raise ValueError("config must contain a mapping")
    return raw


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> InstallerConfig:
    """Load the installer config; defaults when missing or invalid."""
    try:
        raw = _read_yaml(Path(path))
        if raw is None:
            return InstallerConfig()
        cfg = InstallerConfig.from_dict(raw)
    except (yaml.YAMLError, ValueError) as e:
        log.warning("Failed to parse %s: %s", path, e)
        return InstallerConfig()
    log.info("Loaded installer config from %s", path)
    return cfg


def load_repo_config(base_path: Path, existing: InstallerConfig) -> InstallerConfig:
    """
    Overlay the repository's own config.yaml on `existing`.
    Set values and non-empty lists in the repo file win.
    """
    path = Path(base_path) / REPO_CONFIG_FILENAME
    try:
        raw = _read_yaml(path)
        if raw is None:
            return existing
        repo_cfg = InstallerConfig.from_dict(raw)
    except (yaml.YAMLError, ValueError) as e:
        log.warning("Failed to parse repo config %s: %s", path, e)
        return existing

    overrides = {}
    for f in fields(InstallerConfig):
        value = getattr(repo_cfg, f.name)
        if value:
            overrides[f.name] = value
    log.info("Repo config %s overrides: %s", path, sorted(overrides))
    return replace(existing, **overrides)


def generate_default_config() -> str:
    return f"""\
# NixOS Installer Configuration
# Generated by nixos-installer --init

# Git repository URL for the NixOS dotfiles/flake to install from.
# If not set, the built-in default is used.
# repo_url: https://github.com/itzemoji/nixos-dotfiles.git

# Color theme for the installer TUI.
# Available themes: {", ".join(THEMES)}
# theme: {DEFAULT_THEME}

# Home Manager base modules that are always included for every user
# (never shown in the selection screen).
# hm_base_modules: [home]

# ---- Branding ----

# Custom title displayed in the installer header.
# Defaults to "{DEFAULT_BRANDING}" if not set.
# branding_title: MyOrg NixOS Installer

# ---- Defaults ----
# Pre-fill TUI fields with these values. The user can still change them.

# default_hostname: nixos-desktop
# default_username: admin
# Default swap size in GiB (full-disk partitioning mode).
# default_swap_size: "4"

# ---- Install Hooks ----
# Executables run at fixed points of the installation. They receive:
#   INSTALLER_HOST_NAME    - the configured hostname
#   INSTALLER_BASE_PATH    - path to the cloned/local repo
#   INSTALLER_DISK         - selected disk path (e.g. /dev/sda)
#   INSTALLER_MOUNT_ROOT   - mount root (/mnt)

# Run before nixos-install (after partitioning + config generation).
# pre_install_hooks:
#   - /etc/nixos-installer/hooks/pre-install.sh

# Run after nixos-install completes (before password setup).
# post_install_hooks:
#   - /etc/nixos-installer/hooks/post-install.sh
"""


def init_config(path: Path = DEFAULT_CONFIG_PATH) -> None:
    """Write the commented default config, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_default_config())
    log.info("Wrote default config to %s", path)
