from __future__ import annotations

import threading
from typing import Callable, Optional

from loguru import logger as log


class IntervalWorker:
    """Daemon thread that calls `fn` every `interval_sec` until stopped.

    Exceptions raised by `fn` are logged and the loop keeps going.
    """

    def __init__(self, name: str, fn: Callable[[], None], interval_sec: float) -> None:
        self.name = name
        self.fn = fn
        self.interval_sec = float(interval_sec)
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.is_alive:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    def _run_loop(self) -> None:  # pragma: no cover - background thread
        while not self._stop.wait(self.interval_sec):
            try:
                self.fn()
            except Exception:
                log.exception(f"{self.name}: tick failed")
