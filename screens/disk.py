# screens/disk.py
from __future__ import annotations
from textual.containers import Horizontal
from textual.widgets import Button, DataTable, Static
from screens.base import StepScreen


class DiskScreen(StepScreen):
    """Step 6: choose the disk that will be erased."""

    BINDINGS = [("q", "app.quit", "Quit")]

    def compose_body(self):
        yield Static(
            "[bold]All data on the selected disk will be erased.[/bold]",
            id="warning",
        )
        yield DataTable(cursor_type="row", id="disk_table")

    def compose_buttons(self):
        with Horizontal(id="nav_buttons"):
            yield Button("Next →", id="btn_next", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one("#disk_table", DataTable)
        table.add_columns("Device", "Size", "Model")
        for disk in self.state.disks:
            table.add_row(disk.path, disk.size_human, disk.model)
        if self.state.disks:
            table.move_cursor(row=min(self.state.disk_cursor, len(self.state.disks) - 1))
        table.focus()

    def commit(self) -> None:
        table = self.query_one("#disk_table", DataTable)
        if table.row_count:
            self.state.disk_cursor = table.cursor_row

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn_next":
            self.submit()
