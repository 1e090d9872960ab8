# tests/test_wizard_e2e.py
"""
End-to-end headless Pilot tests for the installer.

The repository is a tmp_path fixture; disks, passwords and worker threads
are mocked so the tests run without root privileges and never touch the
host's disks.
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from textual.widgets import DataTable, Input, ListView, Log, ProgressBar

from app import NixosInstaller
from conftest import make_repo
from widgets.installer_header import InstallerHeader, render_banner
from wizard import Wizard, WizardStep as S


async def type_text(pilot, text):
    for ch in text:
        await pilot.press(ch)


def screen_name(pilot):
    return type(pilot.app.screen).__name__


@pytest.mark.asyncio
async def test_preset_screen_lists_presets_and_custom(wizard):
    app = NixosInstaller(wizard)
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        assert screen_name(pilot) == "PresetScreen"
        items = pilot.app.screen.query_one("#preset_list", ListView)
        assert len(items) == 3


@pytest.mark.asyncio
async def test_walk_to_disk_selection(wizard):
    app = NixosInstaller(wizard)
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        await pilot.press("enter")                    # preset "desktop"
        await pilot.pause()
        assert screen_name(pilot) == "TextInputScreen"
        assert wizard.step is S.CREATE_USER

        await type_text(pilot, "alice")
        await pilot.press("enter")
        await pilot.pause()
        assert screen_name(pilot) == "ChoiceScreen"

        await pilot.press("down", "enter")            # no more users
        await pilot.pause()
        assert screen_name(pilot) == "ModuleSelectScreen"
        assert wizard.step is S.SELECT_HM_MODULES

        await pilot.press("n")
        await pilot.pause()
        assert wizard.step is S.SELECT_USER_PACKAGES
        await pilot.press("n")
        await pilot.pause()
        assert screen_name(pilot) == "DiskScreen"
        table = pilot.app.screen.query_one("#disk_table", DataTable)
        assert table.row_count == 2
        assert wizard.state.users[0].username == "alice"


@pytest.mark.asyncio
async def test_validation_message_keeps_screen(wizard):
    app = NixosInstaller(wizard)
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        await pilot.press("down", "down", "enter")    # Custom
        await pilot.pause()
        assert wizard.step is S.HOST_NAME
        await pilot.press("enter")
        await pilot.pause()
        assert wizard.step is S.HOST_NAME
        err = pilot.app.screen.query_one("#err_msg")
        assert "Host name cannot be empty" in str(err.render())

        await pilot.press("escape")
        await pilot.pause()
        assert screen_name(pilot) == "PresetScreen"


@pytest.mark.asyncio
async def test_refused_back_quits(wizard):
    app = NixosInstaller(wizard)
    with patch.object(NixosInstaller, "exit") as exit_mock:
        async with app.run_test(headless=True, size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("escape")
            await pilot.pause()
            exit_mock.assert_called_once()
            assert wizard.step is S.SELECT_PRESET


@pytest.mark.asyncio
async def test_clone_screen_advances_when_clone_finishes(tmp_path, spawn):
    dest = tmp_path / "dots"
    w = Wizard(dest, repo_url="https://example.com/dots.git", spawn=spawn)
    app = NixosInstaller(w, theme="nord")
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        assert screen_name(pilot) == "CloneScreen"
        _, shared, _, _ = spawn.calls[-1]
        shared.append("Receiving objects:  42% (1/2)")
        with shared.update() as s:
            s.percent = 42
        await pilot.pause(0.2)
        bar = pilot.app.screen.query_one("#clone_bar", ProgressBar)
        assert bar.progress == 42
        assert pilot.app.screen.query_one("#clone_log", Log).line_count == 1

        make_repo(dest)
        shared.finish()
        await pilot.pause(0.2)
        assert screen_name(pilot) == "PresetScreen"
        assert pilot.app.theme == "nord"


@pytest.mark.asyncio
async def test_installing_screen_shows_failure(wizard, spawn):
    wizard.state.preset_cursor = 0
    wizard.confirm()
    wizard.state.current_username = "alice"
    wizard.confirm()
    wizard.state.another_user_cursor = 1
    wizard.confirm()
    wizard.confirm()
    wizard.confirm()
    wizard.confirm()                                  # disk
    wizard.confirm()                                  # full disk
    wizard.confirm()                                  # swap "4"
    assert wizard.step is S.CONFIRM

    app = NixosInstaller(wizard)
    with patch.object(NixosInstaller, "exit") as exit_mock:
        async with app.run_test(headless=True, size=(120, 40)) as pilot:
            await pilot.pause()
            assert screen_name(pilot) == "ConfirmScreen"
            await pilot.click("#btn_install")
            await pilot.pause()
            assert screen_name(pilot) == "InstallingScreen"

            _, shared, _, _ = spawn.calls[-1]
            shared.set_progress(1)
            shared.append("ERROR: Partitioning failed: boom")
            shared.fail("Partitioning failed: boom")
            await pilot.pause(0.2)
            err = pilot.app.screen.query_one("#err_msg")
            assert "Partitioning failed: boom" in str(err.render())

            await pilot.press("escape")
            await pilot.pause()
            assert wizard.step is S.INSTALLING
            exit_mock.assert_not_called()

            await pilot.press("enter")
            await pilot.pause()
            exit_mock.assert_called_once()


@pytest.mark.asyncio
async def test_host_name_input_accepts_typing(wizard):
    app = NixosInstaller(wizard)
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        await pilot.press("down", "down", "enter")    # Custom
        await pilot.pause()
        assert screen_name(pilot) == "TextInputScreen"
        await type_text(pilot, "box")
        assert pilot.app.screen.query_one("#inp_value", Input).value == "box"
        await pilot.press("enter")
        await pilot.pause()
        assert wizard.state.host_name == "box"
        assert wizard.step is S.SELECT_NIXOS_MODULES
        assert screen_name(pilot) == "ModuleSelectScreen"


@pytest.mark.asyncio
async def test_clone_screen_shows_bracketed_url(tmp_path, spawn):
    url = "https://example.com/[team]/dots.git"
    w = Wizard(tmp_path / "dots", repo_url=url, spawn=spawn)
    app = NixosInstaller(w)
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        assert screen_name(pilot) == "CloneScreen"
        title = pilot.app.screen.query_one("#content .title")
        assert str(title.render()) == f"Cloning {url}"


@pytest.mark.asyncio
async def test_header_renders_title_verbatim(wizard):
    wizard.branding_title = "Lab [x]"
    app = NixosInstaller(wizard)
    async with app.run_test(headless=True, size=(120, 40)) as pilot:
        await pilot.pause()
        header = pilot.app.screen.query_one(InstallerHeader)
        text = str(header.render())
        assert text.startswith(render_banner("Lab [x]"))
        assert text.endswith("Step 2/12: Select Host Preset")
