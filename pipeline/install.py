from __future__ import annotations
import os
import subprocess
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional, Tuple
from disk import partition as parts
from disk.partition import PartitionPlan
from nix import generate
from nix.scan import NixModule
from pipeline import target
from pipeline.commands import CommandError, run_hook
from pipeline.progress import InstallLog, SharedProgress
from state import UserEntry
from logger import log

# partition, format+mount, hardware detect, hardware write, configs,
# git add, nixos-install, copy repo, completion
INSTALL_BASE_STAGES = 9


class StageFailed(Exception):
    """A stage failed; the message is shown to the operator as-is."""


@dataclass
class InstallJob:
    """Inputs of one install run, copied before the worker starts."""
    disk_path: str
    partitions: List[PartitionPlan]
    base_path: Path
    host_name: str
    is_custom: bool = False
    nixos_modules: List[NixModule] = field(default_factory=list)
    system_packages: List[NixModule] = field(default_factory=list)
    users: List[UserEntry] = field(default_factory=list)
    hm_base_modules: List[str] = field(default_factory=list)
    pre_hooks: List[str] = field(default_factory=list)
    post_hooks: List[str] = field(default_factory=list)
    accept_flake_config: bool = True

    @property
    def total_stages(self) -> int:
        return INSTALL_BASE_STAGES + len(self.pre_hooks) + len(self.post_hooks)

    @property
    def flake_ref(self) -> str:
        return f"{self.base_path}#{self.host_name}"


Stage = Tuple[str, Callable[[], None]]


class InstallPipeline:
    """Runs the install stages in order, stopping at the first failure."""

    def __init__(
        self, job: InstallJob, shared: SharedProgress,
        install_log: Optional[InstallLog] = None,
    ) -> None:
        self.job = job
        self.shared = shared
        self.install_log = install_log or InstallLog()
        self._hardware_config = ""

    # -- Logging ---------------------------------------------------------------

    def log(self, msg: str) -> None:
        self.shared.append(msg)
        self.install_log.write(msg)

    def log_error(self, msg: str) -> None:
        log.error("Install failed: %s", msg)
        for line in msg.splitlines():
            self.shared.append(f"ERROR: {line}")
        self.install_log.write(f"ERROR: {msg}")

    # -- Stage list ------------------------------------------------------------

    def stages(self) -> List[Stage]:
        stages: List[Stage] = [
            ("Partitioning failed", self.partition),
            ("Format/mount failed", self.format_and_mount),
            ("Hardware config generation failed", self.generate_hardware_config),
            ("Failed to write hardware config", self.write_hardware_config),
            ("Failed to write configuration", self.write_configs),
            ("git add failed", self.stage_files),
        ]
        for hook in self.job.pre_hooks:
            stages.append(("Pre-install hook failed", partial(self.run_hook, "pre-install", hook)))
        stages.append(("nixos-install failed", self.nixos_install))
        stages.append(("Failed to copy repo to target", self.copy_repo))
        for hook in self.job.post_hooks:
            stages.append(("Post-install hook failed", partial(self.run_hook, "post-install", hook)))
        return stages

    def run(self) -> None:
        self.install_log.reset()
        log.info("Install pipeline: %d stages for host %s on %s",
                 self.job.total_stages, self.job.host_name, self.job.disk_path)
        for number, (prefix, stage) in enumerate(self.stages(), 1):
            self.shared.set_progress(number)
            try:
                stage()
                continue
            except StageFailed as e:
                msg = str(e)
            except (CommandError, OSError) as e:
                msg = f"{prefix}: {e}"
            self.log_error(msg)
            self.shared.fail(msg)
            return

        self.shared.set_progress(self.job.total_stages)
        self.log("Installation complete!")
        self.shared.finish()
        log.info("Install pipeline finished")

    # -- Stages ----------------------------------------------------------------

    def partition(self) -> None:
        self.log(f"Partitioning {self.job.disk_path}...")
        parts.partition_disk(self.job.disk_path, self.job.partitions)

    def format_and_mount(self) -> None:
        self.log("Formatting and mounting partitions...")
        parts.format_and_mount(self.job.disk_path, self.job.partitions)

    def generate_hardware_config(self) -> None:
        self.log("Generating hardware configuration...")
        self._hardware_config = target.generate_hardware_config()

    def write_hardware_config(self) -> None:
        self.log("Writing hardware configuration...")
        generate.write_hardware_config(
            self.job.base_path, self.job.host_name, self._hardware_config
        )

    def write_configs(self) -> None:
        job = self.job
        if job.is_custom:
            self.log("Writing host configuration...")
            content = generate.generate_configuration_nix(
                job.host_name, job.nixos_modules, job.system_packages,
                [u.username for u in job.users],
            )
            generate.write_host_config(job.base_path, job.host_name, content)

        for user in job.users:
            self.log(f"Writing user-{user.username}.nix...")
            content = generate.generate_user_nix(
                job.host_name, user.username, user.hm_modules,
                user.package_modules, job.hm_base_modules,
            )
            try:
                generate.write_user_config(job.base_path, job.host_name, user.username, content)
            except OSError as e:
                raise StageFailed(f"Failed to write user config: {e}") from e

    def stage_files(self) -> None:
        self.log("Staging generated files (git add)...")
        target.git_add_all(self.job.base_path)

    def run_hook(self, kind: str, script: str) -> None:
        self.log(f"Running {kind} hook: {script}...")
        output = run_hook(script, self.job.host_name, self.job.base_path, self.job.disk_path)
        for line in output.splitlines():
            if line.strip():
                self.log(f"  [hook] {line.strip()}")

    def nixos_install(self) -> None:
        self.log("Running nixos-install (this may take a while)...")
        env = dict(os.environ)
        if self.job.accept_flake_config:
            env["NIX_CONFIG"] = "accept-flake-config = true"
        argv = ["nixos-install", "--flake", self.job.flake_ref, "--no-root-passwd"]
        log.info("Running: %s", " ".join(argv))
        try:
            proc = subprocess.Popen(
                argv,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                env=env,
            )
        except OSError as e:
            raise StageFailed(f"Failed to run nixos-install: {e}") from e

        with proc:
            # nix build output arrives on stderr
            for line in proc.stderr:
                trimmed = line.strip()
                if trimmed:
                    self.log(trimmed)
            returncode = proc.wait()
        if returncode != 0:
            raise StageFailed(f"nixos-install failed with exit code {returncode}")

    def copy_repo(self) -> None:
        self.log(f"Copying repository to {target.TARGET_CONFIG_DIR}/...")
        target.copy_repo_to_target(self.job.base_path)


def run_install(job: InstallJob, shared: SharedProgress) -> None:
    """Worker entry point."""
    InstallPipeline(job, shared).run()
