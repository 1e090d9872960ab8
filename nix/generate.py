from __future__ import annotations
from pathlib import Path
from typing import List, Sequence
from nix.scan import NixModule
from logger import log

HARDWARE_FILENAME = "_hardware-configuration.nix"
HOST_CONFIG_FILENAME = "configuration.nix"


def _module_line(kind: str, name: str, selected: bool, indent: int = 6) -> str:
    prefix = " " * indent
    ref = f"self.{kind}.{name}"
    return f"{prefix}{ref}" if selected else f"{prefix}# {ref}"


def user_module_name(host_name: str, username: str) -> str:
    return f"{host_name}-user-{username}"


def generate_configuration_nix(
    host_name: str,
    nixos_modules: Sequence[NixModule],
    system_packages: Sequence[NixModule],
    users: Sequence[str],
) -> str:
    """
    Build the flake-parts module for a custom host.

    Every discovered module is listed; unselected ones are commented out so
    they stay discoverable when editing the host later.
    """
    lines: List[str] = ["      ./" + HARDWARE_FILENAME]

    if nixos_modules:
        lines.append("")
    for m in nixos_modules:
        lines.append(_module_line("nixosModules", m.name, m.selected))

    if system_packages:
        lines.append("")
    for m in system_packages:
        lines.append(_module_line("nixosModules", m.name, m.selected))

    if users:
        lines.append("")
        lines.append("      self.nixosModules.home-manager")
        for user in users:
            lines.append(f"      self.nixosModules.{user_module_name(host_name, user)}")

    lines.append("      {")
    lines.append(f'        networking.hostName = "{host_name}";')
    lines.append("      }")

    module_lines = "\n".join(lines)
    return (
        "{ inputs, self, ... }:\n"
        "{\n"
        f"  flake.nixosConfigurations.{host_name} = inputs.nixpkgs.lib.nixosSystem {{\n"
        "    specialArgs = { inherit inputs self; };\n"
        "    modules = [\n"
        f"{module_lines}\n"
        "    ];\n"
        "  };\n"
        "}\n"
    )


def generate_user_nix(
    host_name: str,
    username: str,
    hm_modules: Sequence[NixModule],
    package_modules: Sequence[NixModule],
    hm_base_modules: Sequence[str] = (),
) -> str:
    """
    Build user-<username>.nix: the system account plus its Home Manager
    imports, exported as one nixosModule named <host>-user-<username>.

    Passwords are never written here; they are set with chpasswd inside the
    installed system.
    """
    imports: List[str] = [_module_line("homeManagerModules", "home", True, indent=8)]
    for base in hm_base_modules:
        if base != "home":
            imports.append(_module_line("homeManagerModules", base, True, indent=8))
    for m in list(hm_modules) + list(package_modules):
        imports.append(_module_line("homeManagerModules", m.name, m.selected, indent=8))

    import_block = "\n".join(imports)
    hm_block = (
        f"\n      home-manager.users.{username}.imports = [\n"
        f"{import_block}\n"
        "      ];"
    )

    return (
        "{ ... }:\n"
        "{\n"
        f"  flake.nixosModules.{user_module_name(host_name, username)} =\n"
        "    {\n"
        "      pkgs,\n"
        "      self,\n"
        "      inputs,\n"
        "      ...\n"
        "    }:\n"
        "    {\n"
        f"      users.users.{username} = {{\n"
        "        isNormalUser = true;\n"
        '        extraGroups = [ "wheel" ];\n'
        f"      }};{hm_block}\n"
        "    };\n"
        "}\n"
    )


# -- Writing -------------------------------------------------------------------

def host_dir(base_path: Path, host_name: str) -> Path:
    return Path(base_path) / "modules" / "hosts" / host_name


def _write(base_path: Path, host_name: str, filename: str, content: str) -> Path:
    directory = host_dir(base_path, host_name)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(content)
    log.info("Wrote %s", path)
    return path


def write_host_config(base_path: Path, host_name: str, content: str) -> Path:
    return _write(base_path, host_name, HOST_CONFIG_FILENAME, content)


def write_user_config(base_path: Path, host_name: str, username: str, content: str) -> Path:
    return _write(base_path, host_name, f"user-{username}.nix", content)


def write_hardware_config(base_path: Path, host_name: str, content: str) -> Path:
    return _write(base_path, host_name, HARDWARE_FILENAME, content)
