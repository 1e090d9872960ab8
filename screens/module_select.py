# screens/module_select.py
from __future__ import annotations
from textual.containers import Horizontal
from textual.widgets import Button, SelectionList, Static
from textual.widgets.selection_list import Selection
from screens.base import StepScreen
from wizard import WizardStep as S
from logger import log

# step -> WizardState attribute holding the module list
MODULE_LISTS = {
    S.SELECT_NIXOS_MODULES: "nixos_modules",
    S.SELECT_SYSTEM_PACKAGES: "system_packages",
    S.SELECT_HM_MODULES: "hm_modules",
    S.SELECT_USER_PACKAGES: "user_pkg_modules",
}


class ModuleSelectScreen(StepScreen):
    """Checklist of discovered modules; unselected ones end up commented out."""

    BINDINGS = [
        ("n", "next_step", "Next"),
        ("q", "app.quit", "Quit"),
    ]

    @property
    def modules(self):
        return getattr(self.state, MODULE_LISTS[self.wizard.step])

    def compose_body(self):
        step = self.wizard.step
        if step in (S.SELECT_HM_MODULES, S.SELECT_USER_PACKAGES):
            user = self.wizard.current_hm_user()
            target = f"user '{user.username}'" if user else "the user"
        else:
            target = f"host '{self.state.host_name}'"
        yield Static(f"Modules for {target}.", classes="hint", markup=False)
        yield Static(
            "Use [bold]Space[/bold] to toggle, [bold]↑↓[/bold] to navigate, "
            "[bold]N[/bold] to continue.",
            classes="hint",
        )
        if self.modules:
            yield SelectionList(
                *[Selection(m.name, i, m.selected) for i, m in enumerate(self.modules)],
                id="module_list",
            )
        else:
            yield Static("[yellow]No modules found in the repository.[/yellow]")

    def compose_buttons(self):
        with Horizontal(id="nav_buttons"):
            yield Button("Next →", id="btn_next", variant="primary")

    def on_selection_list_selected_changed(self, event: SelectionList.SelectedChanged) -> None:
        chosen = set(event.selection_list.selected)
        for i, module in enumerate(self.modules):
            module.selected = i in chosen

    def action_next_step(self) -> None:
        picked = [m.name for m in self.modules if m.selected]
        log.info("%s: selected %s", self.wizard.step.name, picked)
        self.submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn_next":
            self.action_next_step()
