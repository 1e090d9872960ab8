# screens/confirm.py
from __future__ import annotations
from textual.containers import Horizontal
from textual.widgets import Button, Checkbox, DataTable, Static
from screens.base import StepScreen
from logger import log


class ConfirmScreen(StepScreen):
    """Step 8: summary of everything that is about to happen."""

    def compose_body(self):
        s = self.state
        disk = s.selected_disk
        yield Static(
            f"[bold]ALL DATA ON {disk.path if disk else '?'} WILL BE ERASED.[/bold]",
            id="warning",
        )
        yield Static(self._build_summary(), id="summary", markup=False)
        yield DataTable(id="plan_table")
        yield Checkbox("Accept flake config (substituters, keys)", s.accept_flake_config, id="chk_flake")

    def compose_buttons(self):
        with Horizontal(id="nav_buttons"):
            yield Button("← Back", id="btn_back", variant="default")
            yield Button("Install", id="btn_install", variant="error")

    def _build_summary(self) -> str:
        s = self.state
        w = self.wizard
        lines = [
            f"  Host            : {s.host_name}{' (custom)' if s.is_custom else ''}",
            f"  Users           : {', '.join(u.username for u in s.users)}",
        ]
        if s.is_custom:
            picked = [m.name for m in s.nixos_modules + s.system_packages if m.selected]
            lines.append(f"  Host modules    : {', '.join(picked) or '(none)'}")
        if s.selected_disk is not None:
            d = s.selected_disk
            lines.append(f"  Disk            : {d.path} ({d.size_human}, {d.model})")
        lines.append(f"  Partition mode  : {s.partition_mode.value}")
        lines.append(f"  Flake           : {w.base_path}#{s.host_name}")
        hooks = len(w.config.pre_install_hooks) + len(w.config.post_install_hooks)
        if hooks:
            lines.append(f"  Install hooks   : {hooks}")
        return "\n".join(lines)

    def on_mount(self) -> None:
        table = self.query_one("#plan_table", DataTable)
        table.add_columns("#", "Label", "Mount", "Filesystem", "Size")
        for n, p in enumerate(self.state.partitions, 1):
            table.add_row(str(n), p.label, p.mount_point, p.fs_type.display_name, p.size_label)

    def commit(self) -> None:
        self.state.accept_flake_config = self.query_one("#chk_flake", Checkbox).value

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn_install":
            log.info("Confirm screen: install requested")
            self.state.confirm_cursor = 0
            self.submit()
        elif event.button.id == "btn_back":
            self.state.confirm_cursor = 1
            self.submit()
