from __future__ import annotations
import shutil
import subprocess
from pathlib import Path
from typing import IO, List, Optional
from pipeline.progress import SharedProgress
from logger import log

READ_CHUNK = 4096


class ProgressLineSplitter:
    """
    Incremental tokenizer for `git --progress` output.

    git redraws progress lines with bare carriage returns, so both CR and LF
    end a line. Bytes after the last terminator stay buffered until more data
    arrives or flush() is called at end of stream.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    def feed(self, data: bytes) -> List[str]:
        lines: List[str] = []
        for byte in data:
            if byte in (0x0D, 0x0A):
                line = self._take()
                if line:
                    lines.append(line)
            else:
                self._buf.append(byte)
        return lines

    def flush(self) -> List[str]:
        line = self._take()
        return [line] if line else []

    def _take(self) -> str:
        line = self._buf.decode("utf-8", errors="replace").strip()
        self._buf.clear()
        return line


def parse_percent(line: str) -> Optional[int]:
    """
    Return the number written directly before the first '%' in `line`.

    'Receiving objects:  42% (123/456)' -> 42. Lines without a '%', or with
    no digits right before it, yield None.
    """
    pos = line.find("%")
    if pos < 0:
        return None
    start = pos
    while start > 0 and line[start - 1] in "0123456789":
        start -= 1
    digits = line[start:pos]
    if not digits:
        return None
    value = int(digits)
    return value if value <= 100 else None


def record_line(shared: SharedProgress, line: str) -> None:
    with shared.update() as s:
        s.phase = line
        pct = parse_percent(line)
        if pct is not None:
            s.percent = pct
        s.log.append(line)


def _pump(stream: IO[bytes], shared: SharedProgress) -> None:
    splitter = ProgressLineSplitter()
    while True:
        chunk = stream.read1(READ_CHUNK)
        if not chunk:
            break
        for line in splitter.feed(chunk):
            record_line(shared, line)
    for line in splitter.flush():
        record_line(shared, line)


def prepare_destination(dest: Path) -> None:
    """Remove a previous clone so git can create the directory afresh."""
    if dest.exists():
        log.info("Removing previous clone at %s", dest)
        shutil.rmtree(dest, ignore_errors=True)


def clone_repo(url: str, dest: Path, shared: SharedProgress) -> None:
    """Clone `url` into `dest`, reporting progress through `shared`."""
    shared.append(f"Cloning {url}...")
    with shared.update() as s:
        s.phase = "Starting clone..."

    try:
        proc = subprocess.Popen(
            ["git", "clone", "--progress", url, str(dest)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        msg = f"Failed to run git clone: {e}"
        log.error(msg)
        shared.append(msg)
        shared.fail(msg)
        return

    _pump(proc.stderr, shared)
    returncode = proc.wait()

    if returncode == 0:
        log.info("Clone of %s completed", url)
        shared.append("Clone completed successfully.")
        with shared.update() as s:
            s.percent = 100
            s.phase = "Clone complete!"
            s.done = True
    else:
        msg = f"git clone failed with exit code {returncode}"
        log.error(msg)
        shared.append(msg)
        shared.fail(msg)
