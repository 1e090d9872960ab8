from __future__ import annotations
import subprocess
from pathlib import Path
from pipeline.commands import CommandError, MOUNT_ROOT, run_cmd
from logger import log

TARGET_CONFIG_DIR = f"{MOUNT_ROOT}/etc/nixos"


def generate_hardware_config() -> str:
    """Return the hardware configuration detected for the mounted target."""
    return run_cmd(
        "nixos-generate-config",
        ["--root", MOUNT_ROOT, "--show-hardware-config"],
    )


def git_add_all(base_path: Path) -> None:
    """Stage every generated file so the flake evaluation can see it."""
    run_cmd("git", ["add", "-A"], cwd=base_path)


def copy_repo_to_target(base_path: Path) -> None:
    """Copy the repository (including .git) into the installed /etc/nixos."""
    run_cmd("mkdir", ["-p", TARGET_CONFIG_DIR])
    run_cmd("cp", ["-a", f"{base_path}/.", f"{TARGET_CONFIG_DIR}/"])


def set_password_in_target(username: str, password: str) -> None:
    """Set an account password inside the installed system via chpasswd."""
    log.info("Setting password for '%s' in target", username)
    try:
        proc = subprocess.run(
            ["nixos-enter", "--root", MOUNT_ROOT, "--", "chpasswd"],
            input=f"{username}:{password}\n",
            capture_output=True,
            text=True,
            errors="replace",
        )
    except OSError as e:
        raise CommandError(f"Failed to run nixos-enter: {e}") from e
    if proc.returncode != 0:
        log.warning("chpasswd for '%s' exited %s", username, proc.returncode)
        raise CommandError("chpasswd failed in target")


def reboot() -> None:
    run_cmd("reboot")
