# tests/test_main.py
from pathlib import Path
from unittest.mock import patch

import pytest
import main
from config import InstallerConfig
from conftest import make_repo


def parse(*argv):
    return main.build_parser().parse_args(list(argv))


def test_find_repo_root_walks_up(tmp_path):
    root = make_repo(tmp_path / "dots")
    assert main.find_repo_root(root / "modules" / "hosts") == root
    assert main.find_repo_root(tmp_path) is None


def test_explicit_path_wins(tmp_path):
    base, url = main.resolve_source(parse(str(tmp_path)), InstallerConfig(), [])
    assert base == tmp_path.resolve()
    assert url is None


def test_auto_detected_repo(tmp_path):
    root = make_repo(tmp_path / "dots")
    base, url = main.resolve_source(parse("--repo", "https://x/y.git"), InstallerConfig(), [root])
    assert base == root
    assert url is None


@pytest.mark.parametrize("argv,env,cfg_url,expected", [
    (["--repo", "https://cli/r.git"], "https://env/r.git", "https://cfg/r.git", "https://cli/r.git"),
    ([], "https://env/r.git", "https://cfg/r.git", "https://env/r.git"),
    ([], None, "https://cfg/r.git", "https://cfg/r.git"),
    ([], None, "", main.DEFAULT_REPO_URL),
])
def test_clone_url_precedence(tmp_path, monkeypatch, argv, env, cfg_url, expected):
    if env:
        monkeypatch.setenv(main.REPO_ENV, env)
    else:
        monkeypatch.delenv(main.REPO_ENV, raising=False)
    base, url = main.resolve_source(parse(*argv), InstallerConfig(repo_url=cfg_url or None), [tmp_path])
    assert base == main.CLONE_DIR
    assert url == expected


def test_init_writes_config(tmp_path, capsys):
    path = tmp_path / "etc" / "config.yaml"
    assert main.main(["--init", "--config", str(path)]) == 0
    assert path.exists()
    assert "Created config at" in capsys.readouterr().out


def test_requires_root(capsys):
    with patch("os.geteuid", return_value=1000):
        assert main.main([]) == 1
    assert "must be run as root" in capsys.readouterr().err


def test_unknown_theme_rejected():
    with pytest.raises(SystemExit):
        parse("--theme", "solarized")
