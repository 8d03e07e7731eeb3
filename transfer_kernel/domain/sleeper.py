"""
Sleeper -- Cancellable pause between retry attempts.

Responsibility:
    Provides an injectable pause so the retry executor never calls
    ``time.sleep()`` directly.  Production code waits on a
    ``threading.Event`` that an interrupt can set; tests record the
    requested durations and return immediately.

Architecture position:
    Kernel > Domain -- SystemSleeper is the one sanctioned blocking
    boundary for retry pauses.

Failure modes:
    - SleepInterruptedError when a pause is cut short by ``interrupt()``.
    - KeyboardInterrupt propagates out of SystemSleeper.sleep() unchanged;
      the executor treats both as cancellation.
"""

import threading
from abc import ABC, abstractmethod

from transfer_kernel.exceptions import SleepInterruptedError


class Sleeper(ABC):
    """
    Abstract pause interface.

    Contract:
        ``sleep(seconds)`` returns normally after the full duration, or
        raises SleepInterruptedError if interrupted first.
    """

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Pause for ``seconds``."""
        ...

    @abstractmethod
    def interrupt(self) -> None:
        """Cut the current (or next) pause short."""
        ...


class SystemSleeper(Sleeper):
    """
    Production sleeper backed by ``threading.Event``.

    Contract:
        ``interrupt()`` may be called from any thread, or from a signal
        handler on the main thread.  It wakes a pause in progress; if no
        pause is in progress the next one returns immediately with
        SleepInterruptedError.  Each interrupt is consumed by one pause.

    Non-goals:
        One instance serves one executor.  Concurrent executors get their
        own sleepers so one interrupt cannot cancel an unrelated transfer.
    """

    def __init__(self) -> None:
        self._interrupted = threading.Event()

    def sleep(self, seconds: float) -> None:
        if self._interrupted.wait(timeout=max(seconds, 0)):
            self._interrupted.clear()
            raise SleepInterruptedError(seconds)

    def interrupt(self) -> None:
        self._interrupted.set()


class RecordingSleeper(Sleeper):
    """
    Test sleeper that never blocks.

    Contract:
        Records every requested duration in ``calls``.  When
        ``interrupt_on_call`` is set, that (1-based) call raises
        SleepInterruptedError instead of returning; ``interrupt()`` makes
        the next call raise.
    """

    def __init__(self, interrupt_on_call: int | None = None):
        self.calls: list[float] = []
        self._interrupt_on_call = interrupt_on_call
        self._pending_interrupt = False

    def sleep(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._pending_interrupt or len(self.calls) == self._interrupt_on_call:
            self._pending_interrupt = False
            raise SleepInterruptedError(seconds)

    def interrupt(self) -> None:
        self._pending_interrupt = True

    @property
    def call_count(self) -> int:
        return len(self.calls)
