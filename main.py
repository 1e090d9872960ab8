# main.py
from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple
from config import (
    DEFAULT_CONFIG_PATH, DEFAULT_THEME, THEMES, InstallerConfig, init_config, load_config,
)
from pipeline.progress import INSTALL_LOG_FILE, InstallLog
from logger import log, log_file_path, set_console_level

DEFAULT_REPO_URL = "https://github.com/itzemoji/nixos-dotfiles.git"
CLONE_DIR = Path("/tmp/nixos-dotfiles")
REPO_ENV = "NIXOS_DOTFILES_REPO"


def find_repo_root(start: Path) -> Optional[Path]:
    """Walk up from `start` to a directory holding flake.nix and modules/."""
    for d in [start, *start.parents]:
        if (d / "flake.nix").exists() and (d / "modules").is_dir():
            return d
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nixos-installer",
        description="TUI installer for flake-based NixOS dotfiles repositories.",
        epilog=f"Environment: {REPO_ENV} sets the repository URL when --repo is not given.",
    )
    parser.add_argument("path", nargs="?", help="use an existing local repo instead of cloning")
    parser.add_argument("--repo", metavar="URL", help="override the dotfiles repository URL")
    parser.add_argument(
        "--config", metavar="PATH", type=Path, default=DEFAULT_CONFIG_PATH,
        help=f"config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--theme", choices=THEMES, help="override the color theme")
    parser.add_argument("--init", action="store_true", help="write a default config file and exit")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="also print informational diagnostics to stderr",
    )
    return parser


def resolve_source(
    args: argparse.Namespace, cfg: InstallerConfig, search_from: List[Path]
) -> Tuple[Path, Optional[str]]:
    """
    Return (base_path, repo_url). repo_url is None when a local repository
    is used; otherwise base_path is the clone destination.
    """
    if args.path:
        return Path(args.path).resolve(), None
    for start in search_from:
        root = find_repo_root(start)
        if root is not None:
            log.info("Using local repository %s", root)
            return root, None
    url = args.repo or os.environ.get(REPO_ENV) or cfg.repo_url or DEFAULT_REPO_URL
    return CLONE_DIR, url


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.init:
        try:
            init_config(args.config)
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Created config at: {args.config}")
        print("Edit this file to set your repository URL, theme and other options.")
        return 0

    if os.geteuid() != 0:
        print("ERROR: This installer must be run as root.", file=sys.stderr)
        return 1

    if args.verbose:
        set_console_level(logging.INFO)
    log.info("Diagnostics are written to %s", log_file_path())

    cfg = load_config(args.config)
    theme = args.theme or cfg.theme or DEFAULT_THEME
    search_from = [Path.cwd(), Path(sys.argv[0]).resolve().parent]
    base_path, repo_url = resolve_source(args, cfg, search_from)

    from app import NixosInstaller
    from wizard import Wizard
    NixosInstaller(Wizard(base_path, config=cfg, repo_url=repo_url), theme=theme).run()

    if InstallLog().exists():
        print(f"Installation log saved to: {INSTALL_LOG_FILE}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
