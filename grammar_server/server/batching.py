import logging
from contextlib import contextmanager
from enum import Enum, auto
from typing import Callable, Iterator

__all__ = ["UpdatePhase", "UpdateBatcher"]


class UpdatePhase(Enum):
    IDLE = auto()
    REBUILDING = auto()
    REPORTING = auto()


class UpdateBatcher:
    """Coalesces update requests into a single report.

    An update requested while suspended or busy is only recorded as pending.
    Pending updates are flushed once the batcher is back to `IDLE` with no
    suspension held, so a report is never nested inside another report and a
    request is never lost.
    """

    def __init__(self, report: Callable[[], None]):
        self._report = report
        self._phase = UpdatePhase.IDLE
        self._suspended = 0
        self._pending = False

    @property
    def phase(self) -> UpdatePhase:
        return self._phase

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def is_suspended(self) -> bool:
        return self._suspended > 0

    @property
    def is_rebuilding(self) -> bool:
        return self._phase is UpdatePhase.REBUILDING

    def suspend(self):
        self._suspended += 1

    def resume(self):
        if self._suspended <= 0:
            return

        self._suspended -= 1
        self._flush()

    @contextmanager
    def suspended(self) -> Iterator[None]:
        self.suspend()
        try:
            yield
        finally:
            self.resume()

    def request(self):
        self._pending = True
        self._flush()

    @contextmanager
    def rebuilding(self) -> Iterator[None]:
        """Mark a rebuild in progress, possibly nested inside a report.

        A rebuild triggered by the report being delivered is already part of
        that report, the requests it makes are absorbed instead of causing a
        second one.
        """
        previous = self._phase
        pending = self._pending
        self._phase = UpdatePhase.REBUILDING
        try:
            yield
        finally:
            self._phase = previous
            if previous is UpdatePhase.REPORTING:
                self._pending = pending

        self._flush()

    def _flush(self):
        if not self._pending or self._suspended > 0:
            return

        if self._phase is not UpdatePhase.IDLE:
            logging.debug(f"Update deferred while {self._phase.name.lower()}")
            return

        self._phase = UpdatePhase.REPORTING
        try:
            # Requests made by the report itself are picked up here
            while self._pending and self._suspended == 0:
                self._pending = False
                self._report()
        finally:
            self._phase = UpdatePhase.IDLE
