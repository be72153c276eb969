import enum
import threading
from typing import Optional


class ExitOutcome(enum.Enum):
    """How waiting for a supervised process to become ready ended."""
    READY = "ready"
    TIMED_OUT = "timed_out"
    SPAWN_FAILED = "spawn_failed"
    EXITED_EARLY = "exited_early"


class ReadinessSignal:
    """
    A single-shot notification from the output monitor to any number of waiters.

    The signal moves from unsignaled to signaled at most once. The producer
    closes it when the process has exited, which wakes every waiter. A signal
    that fired before the close still counts as ready.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._signaled = False
        self._closed = False

    @property
    def is_set(self) -> bool:
        with self._condition:
            return self._signaled

    @property
    def is_closed(self) -> bool:
        with self._condition:
            return self._closed

    def signal(self) -> bool:
        """
        Marks the process as ready. Never blocks.

        :return: True on the first transition, False if already signaled or closed.
        """
        with self._condition:
            if self._signaled or self._closed:
                return False
            self._signaled = True
            self._condition.notify_all()
            return True

    def close(self) -> None:
        """Marks the producer as finished and wakes all waiters."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> ExitOutcome:
        """
        Blocks until the signal fires, the producer closes, or `timeout` elapses.

        :param timeout: Maximum number of seconds to wait, or None to wait indefinitely.
        :return ExitOutcome: READY, EXITED_EARLY or TIMED_OUT.
        """
        with self._condition:
            self._condition.wait_for(lambda: self._signaled or self._closed, timeout)
            if self._signaled:
                return ExitOutcome.READY
            if self._closed:
                return ExitOutcome.EXITED_EARLY
            return ExitOutcome.TIMED_OUT
