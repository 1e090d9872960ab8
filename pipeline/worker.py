from __future__ import annotations
import threading
from typing import Any, Callable
from pipeline.progress import SharedProgress
from logger import log


def spawn_worker(
    target: Callable[..., None], shared: SharedProgress, *args: Any, name: str = "pipeline"
) -> threading.Thread:
    """
    Run `target(*args, shared)` on a daemon thread.

    Arguments must already be private copies; the worker never sees the
    wizard's live data. An exception escaping the target poisons `shared`,
    which the poll loop reports as a crashed worker.
    """

    def _run() -> None:
        try:
            target(*args, shared)
        except Exception:
            log.exception("%s worker crashed", name)
            shared.poison()

    thread = threading.Thread(target=_run, name=f"{name}-worker", daemon=True)
    thread.start()
    log.info("Started %s worker", name)
    return thread
