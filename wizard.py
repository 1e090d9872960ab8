from __future__ import annotations
import copy
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union
from config import InstallerConfig, load_repo_config
from disk.devices import BlockDevice, list_block_devices
from disk.partition import FS_CHOICES, FsType, PartitionPlan, full_disk_plan, label_for_mount
from nix.scan import RepoScanner
from pipeline import target
from pipeline.clone import clone_repo, prepare_destination
from pipeline.commands import CommandError
from pipeline.install import InstallJob, run_install
from pipeline.progress import InstallLog, SharedProgress, WorkerCrashed
from pipeline.worker import spawn_worker
from state import PartitionMode, UserEntry, WizardState
from validators import (
    parse_partition_size, parse_swap_size, validate_host_name,
    validate_mount_point, validate_password, validate_root_partition,
    validate_username,
)
from logger import log

TOTAL_STEPS = 12


class WizardStep(Enum):
    CLONING_REPO = "cloning_repo"
    SELECT_PRESET = "select_preset"
    HOST_NAME = "host_name"
    SELECT_NIXOS_MODULES = "select_nixos_modules"
    SELECT_SYSTEM_PACKAGES = "select_system_packages"
    CREATE_USER = "create_user"
    ADD_ANOTHER_USER = "add_another_user"
    SELECT_HM_MODULES = "select_hm_modules"
    SELECT_USER_PACKAGES = "select_user_packages"
    SELECT_DISK = "select_disk"
    PARTITION_MODE_SELECT = "partition_mode_select"
    SWAP_SIZE = "swap_size"
    CUSTOM_PARTITION_MOUNT = "custom_partition_mount"
    CUSTOM_PARTITION_SIZE = "custom_partition_size"
    CUSTOM_PARTITION_FS = "custom_partition_fs"
    CUSTOM_PARTITION_ANOTHER = "custom_partition_another"
    CONFIRM = "confirm"
    INSTALLING = "installing"
    ROOT_PASSWORD = "root_password"
    ROOT_PASSWORD_CONFIRM = "root_password_confirm"
    USER_PASSWORD = "user_password"
    USER_PASSWORD_CONFIRM = "user_password_confirm"
    COMPLETE = "complete"


S = WizardStep

# Coarse step number shown in the header
STEP_NUMBERS: Dict[WizardStep, int] = {
    S.CLONING_REPO: 1,
    S.SELECT_PRESET: 2,
    S.HOST_NAME: 3, S.SELECT_NIXOS_MODULES: 3, S.SELECT_SYSTEM_PACKAGES: 3,
    S.CREATE_USER: 4, S.ADD_ANOTHER_USER: 4,
    S.SELECT_HM_MODULES: 5, S.SELECT_USER_PACKAGES: 5,
    S.SELECT_DISK: 6,
    S.PARTITION_MODE_SELECT: 7, S.SWAP_SIZE: 7, S.CUSTOM_PARTITION_MOUNT: 7,
    S.CUSTOM_PARTITION_SIZE: 7, S.CUSTOM_PARTITION_FS: 7, S.CUSTOM_PARTITION_ANOTHER: 7,
    S.CONFIRM: 8,
    S.INSTALLING: 9,
    S.ROOT_PASSWORD: 10, S.ROOT_PASSWORD_CONFIRM: 10,
    S.USER_PASSWORD: 11, S.USER_PASSWORD_CONFIRM: 11,
    S.COMPLETE: 12,
}

STEP_TITLES: Dict[WizardStep, str] = {
    S.CLONING_REPO: "Cloning Repository",
    S.SELECT_PRESET: "Select Host Preset",
    S.HOST_NAME: "Enter Host Name",
    S.SELECT_NIXOS_MODULES: "Select NixOS Modules",
    S.SELECT_SYSTEM_PACKAGES: "Select System Packages",
    S.ADD_ANOTHER_USER: "Add Another User?",
    S.SELECT_HM_MODULES: "Select Home Manager Modules",
    S.SELECT_USER_PACKAGES: "Select User Packages",
    S.SELECT_DISK: "Select Installation Disk",
    S.PARTITION_MODE_SELECT: "Partition Mode",
    S.SWAP_SIZE: "Swap Size",
    S.CUSTOM_PARTITION_MOUNT: "Partition Mount Point",
    S.CUSTOM_PARTITION_SIZE: "Partition Size",
    S.CUSTOM_PARTITION_FS: "Partition Filesystem",
    S.CUSTOM_PARTITION_ANOTHER: "Add Another Partition?",
    S.CONFIRM: "Confirm Installation",
    S.INSTALLING: "Installing NixOS",
    S.ROOT_PASSWORD: "Set Root Password",
    S.ROOT_PASSWORD_CONFIRM: "Confirm Root Password",
    S.COMPLETE: "Installation Complete",
}

BackRule = Union[WizardStep, Callable[["Wizard"], Optional[WizardStep]], None]


@dataclass(frozen=True)
class Transition:
    confirm: Callable[["Wizard"], None]
    # Fixed target, a rule returning a target (or None to refuse), or None
    back: BackRule = None


class Wizard:
    """
    Step-sequencing state machine of the installer.

    The current step selects a row of TRANSITIONS: confirm() runs its
    handler, back() applies its back rule. Handlers never raise on bad
    input; they leave the step unchanged and set `status_message`.
    """

    def __init__(
        self,
        base_path: Path,
        config: Optional[InstallerConfig] = None,
        repo_url: Optional[str] = None,
        scanner: Optional[RepoScanner] = None,
        list_disks: Callable[[], List[BlockDevice]] = list_block_devices,
        set_password: Callable[[str, str], None] = target.set_password_in_target,
        reboot: Callable[[], None] = target.reboot,
        spawn: Callable[..., object] = spawn_worker,
        install_log: Optional[InstallLog] = None,
    ) -> None:
        self.base_path = Path(base_path)
        self.config = config or InstallerConfig()
        self.repo_url = repo_url
        self.scanner = scanner or RepoScanner(self.base_path)
        self.list_disks = list_disks
        self.set_password = set_password
        self.reboot = reboot
        self.spawn = spawn
        self.install_log = install_log or InstallLog()

        self.state = WizardState()
        self.step = S.CLONING_REPO if repo_url else S.SELECT_PRESET
        self.status_message: Optional[str] = None
        self.should_quit = False
        self.branding_title = self.config.title
        self._clone: Optional[SharedProgress] = None
        self._install: Optional[SharedProgress] = None
        self._started = False
        self._apply_input_defaults()

    # -- Startup ---------------------------------------------------------------

    def start(self) -> None:
        """Begin cloning, or scan the local repository right away."""
        if self._started:
            return
        self._started = True
        if self.repo_url:
            self.start_clone()
        else:
            self.load_repository()

    def start_clone(self) -> None:
        prepare_destination(self.base_path)
        self._clone = SharedProgress()
        log.info("Cloning %s into %s", self.repo_url, self.base_path)
        self.spawn(clone_repo, self._clone, self.repo_url, self.base_path, name="clone")

    def load_repository(self) -> None:
        """Validate the repository layout, merge its config and scan it."""
        warnings = self.scanner.validate_base_path()
        if warnings:
            self.status_message = "\n".join(warnings)
        self.config = load_repo_config(self.base_path, self.config)
        s = self.state
        s.presets = self.scanner.host_presets()
        s.nixos_modules = self.scanner.nixos_modules()
        s.system_packages = self.scanner.package_modules()
        self._apply_input_defaults()
        self.branding_title = self.config.title
        log.info(
            "Repository %s: %d presets, %d NixOS modules, %d package sets",
            self.base_path, len(s.presets), len(s.nixos_modules), len(s.system_packages),
        )

    def finish_clone(self) -> None:
        self.load_repository()
        self._goto(S.SELECT_PRESET)

    def _apply_input_defaults(self) -> None:
        s = self.state
        if not s.host_name_input and self.config.default_hostname:
            s.host_name_input = self.config.default_hostname
        if self.config.default_swap_size:
            s.swap_size_input = self.config.default_swap_size

    # -- Dispatch --------------------------------------------------------------

    def _goto(self, step: WizardStep) -> None:
        if step is not self.step:
            log.info("Wizard: %s -> %s", self.step.name, step.name)
        self.step = step

    def _fail(self, msg: str) -> None:
        log.info("Wizard: %s rejected: %s", self.step.name, msg)
        self.status_message = msg

    def confirm(self) -> None:
        self.status_message = None
        TRANSITIONS[self.step].confirm(self)

    def back(self) -> bool:
        """Return True when the wizard moved back, False when back is refused."""
        rule = TRANSITIONS[self.step].back
        if rule is None:
            return False
        dest = rule if isinstance(rule, WizardStep) else rule(self)
        if dest is None:
            return False
        self.status_message = None
        log.info("Wizard: back %s -> %s", self.step.name, dest.name)
        self.step = dest
        return True

    # -- Header ----------------------------------------------------------------

    def step_number(self) -> int:
        return STEP_NUMBERS[self.step]

    def total_steps(self) -> int:
        return TOTAL_STEPS

    def step_title(self) -> str:
        s = self.state
        if self.step is S.CREATE_USER:
            return f"Create User #{len(s.users) + 1}"
        if self.step in (S.USER_PASSWORD, S.USER_PASSWORD_CONFIRM):
            verb = "Set" if self.step is S.USER_PASSWORD else "Confirm"
            user = self.password_user()
            if user is None:
                return f"{verb} User Password"
            return f"{verb} Password for '{user.username}'"
        return STEP_TITLES[self.step]

    # -- Poll loop -------------------------------------------------------------

    def poll(self) -> None:
        """Copy the running pipeline's status into the wizard state."""
        if self.step is S.CLONING_REPO and self._clone is not None:
            self._sync_clone()
            s = self.state
            if s.clone_done and s.clone_error is None:
                self.finish_clone()
        elif self.step is S.INSTALLING and self._install is not None:
            self._sync_install()
            s = self.state
            if s.install_done and s.install_error is None:
                self._goto(S.ROOT_PASSWORD)

    def _sync_clone(self) -> None:
        s = self.state
        try:
            snap = self._clone.snapshot()
        except WorkerCrashed:
            if s.clone_error is None:
                log.error("Clone worker crashed")
            s.clone_error = "Clone thread crashed unexpectedly"
            s.clone_done = True
            return
        s.clone_log = snap.log
        s.clone_phase = snap.phase
        s.clone_percent = snap.percent
        s.clone_error = snap.error
        s.clone_done = snap.done

    def _sync_install(self) -> None:
        s = self.state
        try:
            snap = self._install.snapshot()
        except WorkerCrashed:
            if s.install_error is None:
                log.error("Install worker crashed")
            s.install_error = "Installation thread crashed unexpectedly"
            return
        s.install_log = snap.log
        s.install_progress = snap.progress
        s.install_total = snap.total
        s.install_error = snap.error
        s.install_done = snap.done

    # -- Clone / preset / host -------------------------------------------------

    def _confirm_cloning(self) -> None:
        # Enter acknowledges a failed clone
        if self.state.clone_error is not None:
            self.should_quit = True

    def _confirm_preset(self) -> None:
        s = self.state
        items = s.preset_items()
        if not 0 <= s.preset_cursor < len(items):
            return
        if s.preset_cursor == len(items) - 1:
            s.is_custom = True
            self._goto(S.HOST_NAME)
        else:
            s.is_custom = False
            s.host_name = s.presets[s.preset_cursor].name
            self._prefill_username()
            self._goto(S.CREATE_USER)

    def _confirm_host_name(self) -> None:
        s = self.state
        ok, msg = validate_host_name(s.host_name_input)
        if not ok:
            self._fail(msg)
            return
        s.host_name = s.host_name_input.strip()
        self._goto(S.SELECT_NIXOS_MODULES)

    def _confirm_nixos_modules(self) -> None:
        self._goto(S.SELECT_SYSTEM_PACKAGES)

    def _confirm_system_packages(self) -> None:
        self._prefill_username()
        self._goto(S.CREATE_USER)

    # -- Users -----------------------------------------------------------------

    def _prefill_username(self) -> None:
        s = self.state
        if not s.users and not s.current_username and self.config.default_username:
            s.current_username = self.config.default_username

    def _confirm_create_user(self) -> None:
        s = self.state
        ok, msg = validate_username(s.current_username, [u.username for u in s.users])
        if not ok:
            self._fail(msg)
            return
        name = s.current_username.strip()
        needs_selection = not self.scanner.user_config_exists(s.host_name, name)
        s.users.append(UserEntry(name, needs_module_selection=needs_selection))
        log.info("Added user '%s' (module selection: %s)", name, needs_selection)
        s.current_username = ""
        self._goto(S.ADD_ANOTHER_USER)

    def _back_create_user(self) -> Optional[WizardStep]:
        if self.state.users:
            return None
        return S.SELECT_SYSTEM_PACKAGES if self.state.is_custom else S.SELECT_PRESET

    def _confirm_add_another_user(self) -> None:
        s = self.state
        another = s.another_user_cursor == 0
        s.another_user_cursor = 0
        if another:
            self._goto(S.CREATE_USER)
        else:
            self.begin_hm_selection()

    def begin_hm_selection(self) -> None:
        self.state.hm_user_index = 0
        self.advance_to_next_hm_user()

    def advance_to_next_hm_user(self) -> None:
        """Visit the next user without an existing user file, else pick a disk."""
        s = self.state
        while s.hm_user_index < len(s.users):
            user = s.users[s.hm_user_index]
            if user.needs_module_selection:
                s.hm_modules = self.scanner.hm_modules()
                s.user_pkg_modules = self.scanner.package_modules()
                self._goto(S.SELECT_HM_MODULES)
                return
            s.hm_user_index += 1
        self.go_to_disk_selection()

    def current_hm_user(self) -> Optional[UserEntry]:
        s = self.state
        if 0 <= s.hm_user_index < len(s.users):
            return s.users[s.hm_user_index]
        return None

    def _confirm_hm_modules(self) -> None:
        self.state.users[self.state.hm_user_index].hm_modules = self.state.hm_modules
        self._goto(S.SELECT_USER_PACKAGES)

    def _confirm_user_packages(self) -> None:
        s = self.state
        s.users[s.hm_user_index].package_modules = s.user_pkg_modules
        s.hm_user_index += 1
        self.advance_to_next_hm_user()

    # -- Disk & partitioning ---------------------------------------------------

    def go_to_disk_selection(self) -> None:
        s = self.state
        try:
            s.disks = self.list_disks()
        except CommandError as e:
            log.error("Listing disks failed: %s", e)
            s.disks = []
            self.status_message = f"Failed to list disks: {e}"
        s.disk_cursor = 0
        self._goto(S.SELECT_DISK)

    def _confirm_disk(self) -> None:
        s = self.state
        if not s.disks:
            self._fail("No disks available")
            return
        s.selected_disk = s.disks[min(s.disk_cursor, len(s.disks) - 1)]
        log.info("Selected disk %s", s.selected_disk.path)
        self._goto(S.PARTITION_MODE_SELECT)

    def _confirm_partition_mode(self) -> None:
        s = self.state
        if s.partition_mode_cursor == 0:
            s.partition_mode = PartitionMode.FULL_DISK
            self._goto(S.SWAP_SIZE)
        else:
            s.partition_mode = PartitionMode.CUSTOM
            s.partitions = []
            self._goto(S.CUSTOM_PARTITION_MOUNT)

    def _confirm_swap_size(self) -> None:
        s = self.state
        swap_gib, msg = parse_swap_size(s.swap_size_input)
        if swap_gib is None:
            self._fail(msg)
            return
        s.partitions = full_disk_plan(swap_gib)
        self._goto(S.CONFIRM)

    def _confirm_custom_mount(self) -> None:
        s = self.state
        ok, msg = validate_mount_point(s.part_mount_input, [p.mount_point for p in s.partitions])
        if not ok:
            self._fail(msg)
            return
        s.part_mount_input = s.part_mount_input.strip()
        self._goto(S.CUSTOM_PARTITION_SIZE)

    def _back_custom_mount(self) -> Optional[WizardStep]:
        return S.PARTITION_MODE_SELECT if not self.state.partitions else None

    def _confirm_custom_size(self) -> None:
        s = self.state
        ok, size_mb, msg = parse_partition_size(s.part_size_input)
        if not ok:
            self._fail(msg)
            return
        s.part_size_mb = size_mb
        self._goto(S.CUSTOM_PARTITION_FS)

    def _back_custom_size(self) -> Optional[WizardStep]:
        self.state.part_size_input = ""
        return S.CUSTOM_PARTITION_MOUNT

    def _confirm_custom_fs(self) -> None:
        s = self.state
        fs = FS_CHOICES[s.part_fs_cursor]
        mount = s.part_mount_input
        if (mount == "swap") != (fs is FsType.SWAP):
            self._fail("Only the 'swap' mount point can use the swap filesystem")
            return
        s.partitions.append(PartitionPlan(label_for_mount(mount), mount, s.part_size_mb, fs))
        log.info("Planned partition %s (%s, %s)", mount, fs.value, s.partitions[-1].size_label)
        s.part_mount_input = ""
        s.part_size_input = ""
        s.part_size_mb = None
        s.part_fs_cursor = 0
        self._goto(S.CUSTOM_PARTITION_ANOTHER)

    def _confirm_custom_another(self) -> None:
        s = self.state
        another = s.another_partition_cursor == 0
        if another and s.partitions and s.partitions[-1].size_mb is None:
            self._fail("The last partition already uses the remaining space")
            return
        s.another_partition_cursor = 0
        self._goto(S.CUSTOM_PARTITION_MOUNT if another else S.CONFIRM)

    # -- Install ---------------------------------------------------------------

    def _confirm_install(self) -> None:
        s = self.state
        if s.confirm_cursor != 0:
            self._goto(S.PARTITION_MODE_SELECT)
            return
        ok, msg = validate_root_partition([p.mount_point for p in s.partitions])
        if not ok:
            self._fail(msg)
            return
        if s.selected_disk is None:
            self._fail("No disk selected")
            return
        self._goto(S.INSTALLING)
        self.start_installation()

    def build_install_job(self) -> InstallJob:
        """Private copies of everything the install worker reads."""
        s = self.state
        return copy.deepcopy(InstallJob(
            disk_path=s.selected_disk.path,
            partitions=s.partitions,
            base_path=self.base_path,
            host_name=s.host_name,
            is_custom=s.is_custom,
            nixos_modules=s.nixos_modules,
            system_packages=s.system_packages,
            users=s.users,
            hm_base_modules=self.config.hm_base_modules,
            pre_hooks=self.config.pre_install_hooks,
            post_hooks=self.config.post_install_hooks,
            accept_flake_config=s.accept_flake_config,
        ))

    def start_installation(self) -> None:
        job = self.build_install_job()
        s = self.state
        s.install_log = []
        s.install_progress = 0
        s.install_total = job.total_stages
        s.install_error = None
        s.install_done = False
        self._install = SharedProgress(total=job.total_stages)
        self.spawn(run_install, self._install, job, name="install")

    def _confirm_installing(self) -> None:
        if self.state.install_error is not None:
            self.should_quit = True

    def log_install(self, msg: str) -> None:
        self.state.install_log.append(msg)
        self.install_log.write(msg)

    # -- Passwords -------------------------------------------------------------

    def _confirm_root_password(self) -> None:
        ok, msg = validate_password(self.state.root_password, "Root password")
        if not ok:
            self._fail(msg)
            return
        self._goto(S.ROOT_PASSWORD_CONFIRM)

    def _confirm_root_password_confirm(self) -> None:
        s = self.state
        if s.root_password != s.root_password_confirm:
            s.root_password_mismatch = True
            s.root_password = s.root_password_confirm = ""
            self._fail("Passwords do not match")
            self._goto(S.ROOT_PASSWORD)
            return
        s.root_password_mismatch = False
        self.log_install("Setting root password...")
        try:
            self.set_password("root", s.root_password)
        except CommandError as e:
            s.root_password = s.root_password_confirm = ""
            self._fail(f"Failed to set root password: {e}")
            self._goto(S.ROOT_PASSWORD)
            return
        s.root_password = s.root_password_confirm = ""
        s.password_user_index = 0
        self._advance_password_user()

    def _back_root_password_confirm(self) -> WizardStep:
        self.state.root_password_confirm = ""
        return S.ROOT_PASSWORD

    def password_user(self) -> Optional[UserEntry]:
        s = self.state
        if 0 <= s.password_user_index < len(s.users):
            return s.users[s.password_user_index]
        return None

    def _advance_password_user(self) -> None:
        s = self.state
        s.current_password = s.current_password_confirm = ""
        s.password_mismatch = False
        self._goto(S.USER_PASSWORD if self.password_user() else S.COMPLETE)

    def _confirm_user_password(self) -> None:
        ok, msg = validate_password(self.state.current_password)
        if not ok:
            self._fail(msg)
            return
        self._goto(S.USER_PASSWORD_CONFIRM)

    def _confirm_user_password_confirm(self) -> None:
        s = self.state
        user = s.users[s.password_user_index]
        if s.current_password != s.current_password_confirm:
            s.password_mismatch = True
            s.current_password = s.current_password_confirm = ""
            self._fail("Passwords do not match")
            self._goto(S.USER_PASSWORD)
            return
        s.password_mismatch = False
        self.log_install(f"Setting password for user '{user.username}'...")
        try:
            self.set_password(user.username, s.current_password)
        except CommandError as e:
            s.current_password = s.current_password_confirm = ""
            self._fail(f"Failed to set password for '{user.username}': {e}")
            self._goto(S.USER_PASSWORD)
            return
        s.password_user_index += 1
        self._advance_password_user()

    def _back_user_password_confirm(self) -> WizardStep:
        self.state.current_password_confirm = ""
        return S.USER_PASSWORD

    # -- Complete --------------------------------------------------------------

    def _confirm_complete(self) -> None:
        if self.state.reboot_cursor == 0:
            log.info("Rebooting into the installed system")
            try:
                self.reboot()
            except CommandError as e:
                log.error("Reboot failed: %s", e)
        self.should_quit = True


TRANSITIONS: Dict[WizardStep, Transition] = {
    S.CLONING_REPO: Transition(Wizard._confirm_cloning),
    S.SELECT_PRESET: Transition(Wizard._confirm_preset),
    S.HOST_NAME: Transition(Wizard._confirm_host_name, S.SELECT_PRESET),
    S.SELECT_NIXOS_MODULES: Transition(Wizard._confirm_nixos_modules, S.HOST_NAME),
    S.SELECT_SYSTEM_PACKAGES: Transition(Wizard._confirm_system_packages, S.SELECT_NIXOS_MODULES),
    S.CREATE_USER: Transition(Wizard._confirm_create_user, Wizard._back_create_user),
    S.ADD_ANOTHER_USER: Transition(Wizard._confirm_add_another_user),
    S.SELECT_HM_MODULES: Transition(Wizard._confirm_hm_modules),
    S.SELECT_USER_PACKAGES: Transition(Wizard._confirm_user_packages),
    S.SELECT_DISK: Transition(Wizard._confirm_disk),
    S.PARTITION_MODE_SELECT: Transition(Wizard._confirm_partition_mode, S.SELECT_DISK),
    S.SWAP_SIZE: Transition(Wizard._confirm_swap_size, S.PARTITION_MODE_SELECT),
    S.CUSTOM_PARTITION_MOUNT: Transition(Wizard._confirm_custom_mount, Wizard._back_custom_mount),
    S.CUSTOM_PARTITION_SIZE: Transition(Wizard._confirm_custom_size, Wizard._back_custom_size),
    S.CUSTOM_PARTITION_FS: Transition(Wizard._confirm_custom_fs, S.CUSTOM_PARTITION_SIZE),
    S.CUSTOM_PARTITION_ANOTHER: Transition(Wizard._confirm_custom_another),
    S.CONFIRM: Transition(Wizard._confirm_install, S.PARTITION_MODE_SELECT),
    S.INSTALLING: Transition(Wizard._confirm_installing),
    S.ROOT_PASSWORD: Transition(Wizard._confirm_root_password),
    S.ROOT_PASSWORD_CONFIRM: Transition(
        Wizard._confirm_root_password_confirm, Wizard._back_root_password_confirm
    ),
    S.USER_PASSWORD: Transition(Wizard._confirm_user_password),
    S.USER_PASSWORD_CONFIRM: Transition(
        Wizard._confirm_user_password_confirm, Wizard._back_user_password_confirm
    ),
    S.COMPLETE: Transition(Wizard._confirm_complete),
}
