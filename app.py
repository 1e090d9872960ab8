# app.py
from __future__ import annotations
from textual.app import App
from textual.screen import Screen
from config import DEFAULT_THEME
from wizard import Wizard, WizardStep as S
from screens.choice import ChoiceScreen
from screens.clone import CloneScreen
from screens.confirm import ConfirmScreen
from screens.disk import DiskScreen
from screens.installing import InstallingScreen
from screens.module_select import ModuleSelectScreen
from screens.preset import PresetScreen
from screens.text_input import TextInputScreen
from logger import log

POLL_INTERVAL = 0.05
PIPELINE_STEPS = (S.CLONING_REPO, S.INSTALLING)
# Escape is ignored here instead of quitting
NO_BACK_STEPS = (S.CLONING_REPO, S.INSTALLING, S.COMPLETE)

SCREENS = {
    S.CLONING_REPO: CloneScreen,
    S.SELECT_PRESET: PresetScreen,
    S.HOST_NAME: TextInputScreen,
    S.SELECT_NIXOS_MODULES: ModuleSelectScreen,
    S.SELECT_SYSTEM_PACKAGES: ModuleSelectScreen,
    S.CREATE_USER: TextInputScreen,
    S.ADD_ANOTHER_USER: ChoiceScreen,
    S.SELECT_HM_MODULES: ModuleSelectScreen,
    S.SELECT_USER_PACKAGES: ModuleSelectScreen,
    S.SELECT_DISK: DiskScreen,
    S.PARTITION_MODE_SELECT: ChoiceScreen,
    S.SWAP_SIZE: TextInputScreen,
    S.CUSTOM_PARTITION_MOUNT: TextInputScreen,
    S.CUSTOM_PARTITION_SIZE: TextInputScreen,
    S.CUSTOM_PARTITION_FS: ChoiceScreen,
    S.CUSTOM_PARTITION_ANOTHER: ChoiceScreen,
    S.CONFIRM: ConfirmScreen,
    S.INSTALLING: InstallingScreen,
    S.ROOT_PASSWORD: TextInputScreen,
    S.ROOT_PASSWORD_CONFIRM: TextInputScreen,
    S.USER_PASSWORD: TextInputScreen,
    S.USER_PASSWORD_CONFIRM: TextInputScreen,
    S.COMPLETE: ChoiceScreen,
}


def screen_for(step: S) -> Screen:
    return SCREENS[step]()


class NixosInstaller(App):
    """NixOS installer wizard."""

    CSS = """
    Screen {
        background: $surface;
    }
    .title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }
    .hint {
        color: $text-muted;
    }
    #content {
        margin: 1 2;
    }
    #nav_buttons {
        dock: bottom;
        height: 3;
        align: center middle;
        margin: 1 2;
    }
    Button {
        margin: 0 1;
    }
    #err_msg {
        margin-top: 1;
        color: $error;
    }
    #warning {
        color: $warning;
        text-style: bold;
    }
    DataTable {
        height: 12;
    }
    ListView {
        height: auto;
        max-height: 20;
        border: solid $primary;
    }
    SelectionList {
        height: 15;
        border: solid $primary;
    }
    Input {
        margin-bottom: 1;
    }
    ProgressBar {
        margin: 1 0;
    }
    Log {
        height: 1fr;
        border: solid $primary;
    }
    """

    BINDINGS = [("ctrl+c", "quit", "Quit")]

    def __init__(self, wizard: Wizard, theme: str = DEFAULT_THEME) -> None:
        super().__init__()
        self.wizard = wizard
        self._start_theme = theme
        self._shown_step = None
        log.info("NixosInstaller started (theme %s)", theme)

    async def on_mount(self) -> None:
        self.theme = self._start_theme
        self.wizard.start()
        self._shown_step = self.wizard.step
        await self.push_screen(screen_for(self.wizard.step))
        self.set_interval(POLL_INTERVAL, self.poll_pipeline)

    def poll_pipeline(self) -> None:
        if self.wizard.step not in PIPELINE_STEPS:
            return
        self.wizard.poll()
        if self.wizard.step is not self._shown_step:
            self.route()
            return
        refresh = getattr(self.screen, "refresh_status", None)
        if refresh is not None:
            refresh()

    def route(self) -> None:
        """Show the screen of the wizard's current step."""
        if self.wizard.should_quit:
            log.info("Wizard finished at %s", self.wizard.step.name)
            self.exit()
            return
        step = self.wizard.step
        if step is self._shown_step:
            show = getattr(self.screen, "show_status", None)
            if show is not None:
                show()
            return
        self._shown_step = step
        self.switch_screen(screen_for(step))

    def confirm_step(self) -> None:
        self.wizard.confirm()
        self.route()

    def go_back(self) -> None:
        if self.wizard.step in NO_BACK_STEPS:
            return
        if not self.wizard.back():
            log.info("Back refused at %s, quitting", self.wizard.step.name)
            self.exit()
            return
        self.route()
