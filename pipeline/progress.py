from __future__ import annotations
import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional
from logger import log

INSTALL_LOG_FILE = "/tmp/nixos-installer.log"
LOG_HEADER = "=== NixOS Installer Log ===\n"


@dataclass
class ProgressState:
    """Status of one background pipeline (clone or install)."""
    log: List[str] = field(default_factory=list)
    progress: int = 0
    total: int = 0
    percent: int = 0
    phase: str = ""
    error: Optional[str] = None
    done: bool = False

    @property
    def finished(self) -> bool:
        return self.done or self.error is not None


class WorkerCrashed(Exception):
    """The worker died while holding, or without releasing, the progress record."""


class SharedProgress:
    """
    Lock-guarded ProgressState shared between one worker and the UI.

    An exception raised while the record is held poisons it: every later
    access raises WorkerCrashed, so a half-written update is never read.
    """

    def __init__(self, total: int = 0) -> None:
        self._lock = threading.Lock()
        self._state = ProgressState(total=total)
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @contextmanager
    def update(self) -> Iterator[ProgressState]:
        with self._lock:
            if self._poisoned:
                raise WorkerCrashed("progress state poisoned")
            try:
                yield self._state
            except BaseException:
                self._poisoned = True
                raise

    def poison(self) -> None:
        with self._lock:
            self._poisoned = True

    def snapshot(self) -> ProgressState:
        with self.update() as s:
            return copy.deepcopy(s)

    # -- Worker-side helpers -------------------------------------------------

    def append(self, line: str) -> None:
        with self.update() as s:
            s.log.append(line)

    def set_progress(self, value: int) -> None:
        with self.update() as s:
            s.progress = value

    def fail(self, message: str) -> None:
        with self.update() as s:
            s.error = message

    def finish(self) -> None:
        with self.update() as s:
            s.done = True


class InstallLog:
    """Append-only operator log kept on disk after the program exits."""

    def __init__(self, path: str = INSTALL_LOG_FILE) -> None:
        self.path = Path(path)

    def reset(self) -> None:
        try:
            self.path.write_text(LOG_HEADER + "\n")
        except OSError as e:
            log.warning("Cannot reset install log %s: %s", self.path, e)

    def write(self, line: str) -> None:
        try:
            with open(self.path, "a") as f:
                f.write(line + "\n")
        except OSError as e:
            log.warning("Cannot append to install log %s: %s", self.path, e)

    def exists(self) -> bool:
        return self.path.exists()
