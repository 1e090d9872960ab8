# screens/preset.py
from __future__ import annotations
from textual.widgets import Label, ListItem, ListView, Static
from screens.base import StepScreen
from logger import log


class PresetScreen(StepScreen):
    """Step 2: pick an existing host preset or define a custom host."""

    BINDINGS = [("q", "app.quit", "Quit")]

    def compose_body(self):
        s = self.state
        yield Static(f"Repository: {self.wizard.base_path}", classes="hint", markup=False)
        yield Static(
            "Select a host preset, or [bold]Custom[/bold] to define a new host.",
            classes="hint",
        )
        items = []
        for preset in s.presets:
            note = "" if preset.has_hardware_config else "  (no hardware config yet)"
            items.append(ListItem(Label(f"{preset.name}{note}", markup=False)))
        items.append(ListItem(Label("Custom")))
        yield ListView(*items, initial_index=min(s.preset_cursor, len(items) - 1), id="preset_list")

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        index = event.list_view.index
        if index is None:
            return
        self.state.preset_cursor = index
        log.info("Preset screen: selected %s", self.state.preset_items()[index])
        self.submit()

    def on_mount(self) -> None:
        self.query_one("#preset_list", ListView).focus()
