# screens/base.py
from __future__ import annotations
from typing import Iterable, Sequence
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import Screen
from textual.widget import Widget
from textual.widgets import Footer, Static
from disk.partition import PartitionPlan
from widgets.installer_header import InstallerHeader


def plan_lines(plan: Sequence[PartitionPlan]) -> str:
    if not plan:
        return "No partitions defined yet."
    rows = [
        f"  {n}. {p.mount_point:<12} {p.fs_type.display_name:<12} {p.size_label}"
        for n, p in enumerate(plan, 1)
    ]
    return "\n".join(rows)


class StepScreen(Screen):
    """Common layout of every wizard screen: banner, body, error line, footer."""

    BINDINGS = [("escape", "go_back", "Back")]

    @property
    def wizard(self):
        return self.app.wizard

    @property
    def state(self):
        return self.app.wizard.state

    def compose(self) -> ComposeResult:
        w = self.wizard
        yield InstallerHeader(
            w.branding_title,
            f"Step {w.step_number()}/{w.total_steps()}: {w.step_title()}",
        )
        with Vertical(id="content"):
            yield from self.compose_body()
            yield Static("", id="err_msg", markup=False)
        yield from self.compose_buttons()
        yield Footer()

    def compose_body(self) -> Iterable[Widget]:
        return ()

    def compose_buttons(self) -> Iterable[Widget]:
        return ()

    def on_mount(self) -> None:
        self.show_status()

    def show_status(self) -> None:
        self.query_one("#err_msg", Static).update(self.wizard.status_message or "")

    def commit(self) -> None:
        """Copy widget values into the wizard state before confirming."""

    def submit(self) -> None:
        self.commit()
        self.app.confirm_step()

    def action_go_back(self) -> None:
        self.commit()
        self.app.go_back()
