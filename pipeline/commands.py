from __future__ import annotations
import os
import subprocess
from pathlib import Path
from typing import Optional, Sequence
from logger import log

MOUNT_ROOT = "/mnt"


class CommandError(Exception):
    """An external tool could not be started or exited nonzero."""


def _trimmed(data: Optional[str]) -> str:
    return (data or "").strip()


def run_cmd(cmd: str, args: Sequence[str] = (), cwd: Optional[Path] = None) -> str:
    """Run `cmd args...` to completion and return its stdout."""
    argv = [cmd, *args]
    log.info("Running: %s", " ".join(argv))
    try:
        result = subprocess.run(
            argv, capture_output=True, text=True, errors="replace", cwd=cwd,
        )
    except OSError as e:
        raise CommandError(f"Failed to run '{cmd}': {e}") from e

    if result.returncode != 0:
        msg = f"Command '{cmd}' failed with exit code {result.returncode}"
        if _trimmed(result.stderr):
            msg += f"\n--- stderr ---\n{_trimmed(result.stderr)}"
        if _trimmed(result.stdout):
            msg += f"\n--- stdout ---\n{_trimmed(result.stdout)}"
        log.warning(msg)
        raise CommandError(msg)
    return result.stdout


def run_hook(script: str, host_name: str, base_path: Path, disk_path: str) -> str:
    """
    Run an install hook with the installer context in its environment and
    return the combined stdout+stderr.
    """
    env = dict(os.environ)
    env.update({
        "INSTALLER_HOST_NAME": host_name,
        "INSTALLER_BASE_PATH": str(base_path),
        "INSTALLER_DISK": disk_path,
        "INSTALLER_MOUNT_ROOT": MOUNT_ROOT,
    })
    log.info("Running hook %s", script)
    try:
        result = subprocess.run(
            [script], capture_output=True, text=True, errors="replace", env=env,
        )
    except OSError as e:
        raise CommandError(f"Failed to run hook '{script}': {e}") from e

    combined = (result.stdout or "") + (result.stderr or "")
    if result.returncode != 0:
        raise CommandError(
            f"Hook '{script}' failed with exit code {result.returncode}\n"
            f"{combined.strip()}"
        )
    return combined
