# screens/installing.py
from __future__ import annotations
from textual.widgets import Log, ProgressBar, Static
from screens.base import StepScreen


class InstallingScreen(StepScreen):
    """Step 9: install pipeline progress and its live log."""

    BINDINGS = [("enter", "acknowledge", "Quit on failure")]

    def __init__(self) -> None:
        super().__init__()
        self._lines_shown = 0

    def compose_body(self):
        yield Static("Installing NixOS, this may take a while.", classes="title")
        yield Static("", id="stage", markup=False)
        yield ProgressBar(total=self.state.install_total, show_eta=False, id="install_bar")
        yield Log(id="install_log")

    def on_mount(self) -> None:
        self.refresh_status()

    def refresh_status(self) -> None:
        s = self.state
        self.query_one("#stage", Static).update(f"Stage {s.install_progress}/{s.install_total}")
        self.query_one("#install_bar", ProgressBar).update(
            total=s.install_total, progress=s.install_progress
        )
        new_lines = s.install_log[self._lines_shown:]
        if new_lines:
            self.query_one("#install_log", Log).write_lines(new_lines)
            self._lines_shown = len(s.install_log)
        if s.install_error is not None:
            self.query_one("#err_msg", Static).update(
                f"Installation failed: {s.install_error}\nPress Enter to quit."
            )

    def action_acknowledge(self) -> None:
        if self.state.install_error is not None:
            self.app.confirm_step()
