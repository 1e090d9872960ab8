# screens/clone.py
from __future__ import annotations
from textual.widgets import Log, ProgressBar, Static
from screens.base import StepScreen


class CloneScreen(StepScreen):
    """Step 1: live progress of the repository clone."""

    BINDINGS = [("enter", "acknowledge", "Quit on failure")]

    def __init__(self) -> None:
        super().__init__()
        self._lines_shown = 0

    def compose_body(self):
        yield Static(f"Cloning {self.wizard.repo_url}", classes="title", markup=False)
        yield Static("Starting clone...", id="clone_phase", markup=False)
        yield ProgressBar(total=100, show_eta=False, id="clone_bar")
        yield Log(id="clone_log")

    def on_mount(self) -> None:
        self.refresh_status()

    def refresh_status(self) -> None:
        s = self.state
        if s.clone_phase:
            self.query_one("#clone_phase", Static).update(s.clone_phase)
        self.query_one("#clone_bar", ProgressBar).update(progress=s.clone_percent)
        new_lines = s.clone_log[self._lines_shown:]
        if new_lines:
            self.query_one("#clone_log", Log).write_lines(new_lines)
            self._lines_shown = len(s.clone_log)
        if s.clone_error is not None:
            self.query_one("#err_msg", Static).update(
                f"Clone failed: {s.clone_error}\nPress Enter to quit."
            )

    def action_acknowledge(self) -> None:
        if self.state.clone_error is not None:
            self.app.confirm_step()
