# screens/text_input.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from textual.widgets import Input, Label, Static
from screens.base import StepScreen, plan_lines
from wizard import WizardStep as S

DIGITS = r"[0-9]*"


@dataclass(frozen=True)
class Field:
    attr: str                 # WizardState attribute backing the input
    label: str
    placeholder: str = ""
    password: bool = False
    restrict: Optional[str] = None


FIELDS = {
    S.HOST_NAME: Field("host_name_input", "Host name:", "e.g. nixos-desktop"),
    S.CREATE_USER: Field("current_username", "Username:", "e.g. alice"),
    S.SWAP_SIZE: Field(
        "swap_size_input", "Swap size in GiB (leave empty for no swap):", "4", restrict=DIGITS
    ),
    S.CUSTOM_PARTITION_MOUNT: Field(
        "part_mount_input", "Mount point (/, /boot, /home, ... or swap):", "/"
    ),
    S.CUSTOM_PARTITION_SIZE: Field(
        "part_size_input", "Size in GiB (leave empty to use the remaining space):",
        restrict=DIGITS,
    ),
    S.ROOT_PASSWORD: Field("root_password", "Root password:", password=True),
    S.ROOT_PASSWORD_CONFIRM: Field("root_password_confirm", "Repeat root password:", password=True),
    S.USER_PASSWORD: Field("current_password", "Password:", password=True),
    S.USER_PASSWORD_CONFIRM: Field("current_password_confirm", "Repeat password:", password=True),
}


class TextInputScreen(StepScreen):
    """Single-line input steps: names, sizes, mount points and passwords."""

    @property
    def field(self) -> Field:
        return FIELDS[self.wizard.step]

    def compose_body(self):
        s = self.state
        step = self.wizard.step
        context = self.context_text(step)
        if context:
            yield Static(context, classes="hint", markup=False)
        yield Label(self.field.label)
        yield Input(
            value=getattr(s, self.field.attr),
            placeholder=self.field.placeholder,
            password=self.field.password,
            restrict=self.field.restrict,
            id="inp_value",
        )
        yield Static("Press [bold]Enter[/bold] to continue, [bold]Esc[/bold] to go back.", classes="hint")

    def context_text(self, step: S) -> str:
        s = self.state
        if step is S.CREATE_USER and s.users:
            return "Users so far: " + ", ".join(u.username for u in s.users)
        if step is S.SWAP_SIZE and s.selected_disk is not None:
            return f"The entire disk {s.selected_disk.path} will be used: EFI (512 MiB), swap, root (ext4)."
        if step in (S.CUSTOM_PARTITION_MOUNT, S.CUSTOM_PARTITION_SIZE):
            text = plan_lines(s.partitions)
            if step is S.CUSTOM_PARTITION_SIZE:
                text += f"\n\nNew partition: {s.part_mount_input}"
            return text
        if step in (S.ROOT_PASSWORD, S.USER_PASSWORD) and (
            s.root_password_mismatch if step is S.ROOT_PASSWORD else s.password_mismatch
        ):
            return "Passwords did not match, please enter them again."
        return ""

    def on_mount(self) -> None:
        self.query_one("#inp_value", Input).focus()

    def commit(self) -> None:
        setattr(self.state, self.field.attr, self.query_one("#inp_value", Input).value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.submit()
