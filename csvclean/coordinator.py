"""
Run a task on a worker thread while listening for interrupts.

The main thread blocks until either the task finishes or an interrupt
arrives. An interrupt sets the cancellation token, then the coordinator waits
for the task to acknowledge by returning and surfaces whatever it produced.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
from typing import Callable, Optional, Sequence, Tuple

from .clean import LineCounter

logger = logging.getLogger(__name__)

Task = Callable[[threading.Event], None]

_DONE = "done"
_SIGNAL = "signal"

# Pending Python signal handlers only run once the main thread wakes up.
POLL_INTERVAL = 0.2


class Coordinator:
    def __init__(self, counter: LineCounter, signals: Sequence[int] = (signal.SIGINT,)):
        self.counter = counter
        self.signals = tuple(signals)
        self.cancel = threading.Event()
        self.interrupted = False
        # SimpleQueue.put is reentrant, so the signal handler may call it.
        self._events: "queue.SimpleQueue[Tuple[str, object]]" = queue.SimpleQueue()

    def interrupt(self, signum: int = signal.SIGINT, frame: object = None) -> None:
        """Request a stop. Usable as a signal handler or from any thread."""
        self._events.put((_SIGNAL, signum))

    def _work(self, task: Task) -> None:
        error: Optional[BaseException] = None
        try:
            task(self.cancel)
        except BaseException as e:  # handed to the main thread
            error = e
        self._events.put((_DONE, error))

    def _next_event(self) -> Tuple[str, object]:
        while True:
            try:
                return self._events.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

    def _install_handlers(self) -> dict:
        previous = {}
        if threading.current_thread() is not threading.main_thread():
            return previous
        for signum in self.signals:
            previous[signum] = signal.signal(signum, self.interrupt)
        return previous

    @staticmethod
    def _restore_handlers(previous: dict) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def run(self, task: Task) -> None:
        """
        Execute ``task(cancel)`` and return once it has finished.

        Re-raises the task's exception, if any. An interrupted run that
        stopped cleanly returns normally; check ``interrupted`` afterwards.
        """
        previous = self._install_handlers()
        try:
            worker = threading.Thread(target=self._work, args=(task,), name="csvclean-run", daemon=True)
            worker.start()

            kind, value = self._next_event()
            if kind == _SIGNAL:
                self.interrupted = True
                logger.info("Processing interrupted (%s), waiting for the current record...", _signal_name(value))
                self.cancel.set()
                kind, value = self._next_event()
                while kind != _DONE:
                    logger.info("Already stopping (%s), still waiting...", _signal_name(value))
                    kind, value = self._next_event()
                logger.info("Processing stopped after %d lines", self.counter.value)

            worker.join()
        finally:
            self._restore_handlers(previous)

        if value is not None:
            raise value


def _signal_name(signum: object) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
