import logging
import signal
import threading

import pytest

from csvclean.clean import LineCounter
from csvclean.coordinator import Coordinator
from csvclean.errors import ParseError


def test_normal_completion():
    counter = LineCounter()
    coordinator = Coordinator(counter)
    seen = []

    coordinator.run(lambda cancel: seen.append(cancel.is_set()))

    assert seen == [False]
    assert coordinator.interrupted is False
    assert not coordinator.cancel.is_set()


def test_task_error_is_reraised():
    coordinator = Coordinator(LineCounter())

    def task(cancel):
        raise ParseError("in.csv", 3, "bad quote")

    with pytest.raises(ParseError) as exc:
        coordinator.run(task)
    assert exc.value.line == 3


def _records_until_stopped(coordinator, counter, written, stop_after, notify):
    def task(cancel):
        for i in range(10):
            if cancel.is_set():
                return
            counter.increment()
            written.append(i)
            if i == stop_after - 1:
                notify()
                assert cancel.wait(5)

    return task


def test_interrupt_stops_after_in_flight_record(caplog):
    caplog.set_level(logging.INFO, logger="csvclean")
    counter = LineCounter()
    coordinator = Coordinator(counter)
    written = []

    coordinator.run(_records_until_stopped(coordinator, counter, written, 3, coordinator.interrupt))

    assert written == [0, 1, 2]
    assert counter.value == 3
    assert coordinator.interrupted is True
    assert coordinator.cancel.is_set()
    assert "Processing stopped after 3 lines" in caplog.text


def test_real_sigint_is_handled():
    counter = LineCounter()
    coordinator = Coordinator(counter)
    written = []
    main_ident = threading.main_thread().ident

    def send_sigint():
        signal.pthread_kill(main_ident, signal.SIGINT)

    coordinator.run(_records_until_stopped(coordinator, counter, written, 2, send_sigint))

    assert written == [0, 1]
    assert coordinator.interrupted is True
    # The previous handler is back in place once the run is over.
    assert signal.getsignal(signal.SIGINT) != coordinator.interrupt


def test_error_after_interrupt_is_still_surfaced():
    coordinator = Coordinator(LineCounter())

    def task(cancel):
        coordinator.interrupt()
        assert cancel.wait(5)
        raise OSError("disk gone")

    with pytest.raises(OSError):
        coordinator.run(task)
    assert coordinator.interrupted is True


def test_extra_interrupts_are_ignored(caplog):
    caplog.set_level(logging.INFO, logger="csvclean")
    coordinator = Coordinator(LineCounter())

    def task(cancel):
        coordinator.interrupt()
        assert cancel.wait(5)
        coordinator.interrupt()

    coordinator.run(task)
    assert "Already stopping" in caplog.text
