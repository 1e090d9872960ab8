# screens/choice.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List
from textual.widgets import Label, ListItem, ListView, Static
from disk.partition import FS_CHOICES
from pipeline.progress import INSTALL_LOG_FILE
from screens.base import plan_lines, StepScreen
from wizard import Wizard, WizardStep as S


@dataclass(frozen=True)
class Choice:
    cursor: str                          # WizardState attribute holding the index
    prompt: Callable[[Wizard], str]
    options: List[str]


def _disk_prompt(w: Wizard) -> str:
    disk = w.state.selected_disk
    name = disk.path if disk else "the disk"
    return f"How should {name} be partitioned?"


CHOICES = {
    S.ADD_ANOTHER_USER: Choice(
        "another_user_cursor",
        lambda w: "Users: " + ", ".join(u.username for u in w.state.users) + "\n\nAdd another user?",
        ["Yes", "No"],
    ),
    S.PARTITION_MODE_SELECT: Choice(
        "partition_mode_cursor",
        _disk_prompt,
        ["Use entire disk (EFI + swap + root)", "Custom partitioning"],
    ),
    S.CUSTOM_PARTITION_FS: Choice(
        "part_fs_cursor",
        lambda w: f"Filesystem for {w.state.part_mount_input}:",
        [fs.display_name for fs in FS_CHOICES],
    ),
    S.CUSTOM_PARTITION_ANOTHER: Choice(
        "another_partition_cursor",
        lambda w: plan_lines(w.state.partitions) + "\n\nAdd another partition?",
        ["Yes", "No"],
    ),
    S.COMPLETE: Choice(
        "reboot_cursor",
        lambda w: f"NixOS was installed successfully.\nInstallation log: {INSTALL_LOG_FILE}",
        ["Reboot now", "Exit"],
    ),
}


class ChoiceScreen(StepScreen):
    """Pick one option from a short list (yes/no, partition mode, filesystem)."""

    BINDINGS = [("q", "app.quit", "Quit")]

    @property
    def choice(self) -> Choice:
        return CHOICES[self.wizard.step]

    def compose_body(self):
        choice = self.choice
        yield Static(choice.prompt(self.wizard), markup=False)
        cursor = getattr(self.state, choice.cursor)
        yield ListView(
            *[ListItem(Label(o)) for o in choice.options],
            initial_index=min(cursor, len(choice.options) - 1),
            id="choice_list",
        )

    def on_mount(self) -> None:
        self.query_one("#choice_list", ListView).focus()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if event.list_view.index is None:
            return
        setattr(self.state, self.choice.cursor, event.list_view.index)
        self.submit()
