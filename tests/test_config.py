# tests/test_config.py
import yaml

import pytest
from config import (
    DEFAULT_BRANDING, InstallerConfig, generate_default_config, init_config,
    load_config, load_repo_config,
)


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg == InstallerConfig()
    assert cfg.title == DEFAULT_BRANDING


def test_load_all_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "repo_url: https://example.com/dots.git\n"
        "theme: nord\n"
        "hm_base_modules: [home, shell]\n"
        "default_hostname: box\n"
        "default_username: alice\n"
        "default_swap_size: 8\n"
        "branding_title: ACME Installer\n"
        "pre_install_hooks: [/hooks/pre.sh]\n"
        "post_install_hooks: [/hooks/post.sh]\n"
    )
    cfg = load_config(path)
    assert cfg.repo_url == "https://example.com/dots.git"
    assert cfg.theme == "nord"
    assert cfg.hm_base_modules == ["home", "shell"]
    assert cfg.default_swap_size == "8"
    assert cfg.title == "ACME Installer"
    assert cfg.pre_install_hooks == ["/hooks/pre.sh"]
    assert cfg.post_install_hooks == ["/hooks/post.sh"]


@pytest.mark.parametrize("body", [
    "theme: [not, closed",
    "theme: solarized-pink\n",
    "- just\n- a list\n",
    "pre_install_hooks: /hooks/pre.sh\n",
])
def test_invalid_file_gives_defaults(tmp_path, body):
    path = tmp_path / "config.yaml"
    path.write_text(body)
    assert load_config(path) == InstallerConfig()


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("default_hostname: box\ntheme_custom: {bg: '#000'}\n")
    assert load_config(path).default_hostname == "box"


def test_repo_config_overrides_set_fields(tmp_path):
    (tmp_path / "config.yaml").write_text(
        "default_hostname: repo-host\npre_install_hooks: []\nbranding_title: Repo\n"
    )
    base = InstallerConfig(default_hostname="sys-host", default_username="alice",
                           pre_install_hooks=["/sys.sh"])
    merged = load_repo_config(tmp_path, base)
    assert merged.default_hostname == "repo-host"
    assert merged.default_username == "alice"
    assert merged.pre_install_hooks == ["/sys.sh"]
    assert merged.branding_title == "Repo"
    assert base.default_hostname == "sys-host"


def test_repo_config_absent_or_broken(tmp_path):
    base = InstallerConfig(theme="dracula")
    assert load_repo_config(tmp_path, base) is base
    (tmp_path / "config.yaml").write_text("theme: [unclosed")
    assert load_repo_config(tmp_path, base) == base


def test_default_config_is_valid_yaml_and_all_commented():
    assert yaml.safe_load(generate_default_config()) is None


def test_init_config_creates_parents(tmp_path):
    path = tmp_path / "etc" / "nixos-installer" / "config.yaml"
    init_config(path)
    assert path.read_text().startswith("# NixOS Installer Configuration")
    assert load_config(path) == InstallerConfig()
