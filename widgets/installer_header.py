# widgets/installer_header.py
from __future__ import annotations
from functools import lru_cache
import pyfiglet
from textual.widgets import Static


@lru_cache(maxsize=8)
def render_banner(title: str) -> str:
    return pyfiglet.figlet_format(title, font="small")


class InstallerHeader(Static):
    """ASCII-art branding banner plus the current step line."""

    DEFAULT_CSS = """
    InstallerHeader {
        color: $accent;
        text-style: bold;
        width: 100%;
        padding: 0 2;
    }
    """

    def __init__(self, title: str, step_line: str = "") -> None:
        text = render_banner(title)
        if step_line:
            text = f"{text}{step_line}"
        super().__init__(text, markup=False)
