"""Simulated interrupt hardware and the simulated clock."""

from __future__ import annotations

import abc
import enum
import heapq
import itertools
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, TextIO

from mipsmachine.stats import SYSTEM_TICK, USER_TICK, Statistics

logger = logging.getLogger(__name__)


class CallBackObj(abc.ABC):
    """An object that a device calls back when an operation completes."""

    @abc.abstractmethod
    def call_back(self) -> None:
        """Handle the completion or arrival signalled by a device."""


class IntStatus(enum.IntEnum):
    """Whether interrupts are disabled or enabled."""

    OFF = 0
    ON = 1

    @property
    def label(self) -> str:
        return "on" if self is IntStatus.ON else "off"


class MachineStatus(enum.IntEnum):
    """What the simulated CPU is running."""

    IDLE = 0
    SYSTEM = 1
    USER = 2


class IntType(enum.IntEnum):
    """The hardware device that raised an interrupt."""

    TIMER = 0
    DISK = 1
    CONSOLE_WRITE = 2
    CONSOLE_READ = 3
    NETWORK_SEND = 4
    NETWORK_RECV = 5

    @property
    def label(self) -> str:
        return _INT_TYPE_LABELS[self]


_INT_TYPE_LABELS = {
    IntType.TIMER: "timer",
    IntType.DISK: "disk",
    IntType.CONSOLE_WRITE: "console write",
    IntType.CONSOLE_READ: "console read",
    IntType.NETWORK_SEND: "network send",
    IntType.NETWORK_RECV: "network recv",
}


class MachineHalted(Exception):
    """Raised when the simulated machine shuts down."""


@dataclass
class PendingInterrupt:
    """An interrupt scheduled to fire at a given simulated time."""

    call_on_interrupt: CallBackObj
    when: int
    kind: IntType


@dataclass(order=True)
class _QueueItem:
    when: int
    seq: int
    pending: PendingInterrupt = field(compare=False)


class Interrupt:
    """Tracks the interrupt level, pending device interrupts and simulated time."""

    def __init__(
        self,
        stats: Statistics,
        on_yield: Optional[Callable[[], None]] = None,
        output: Optional[TextIO] = None,
    ) -> None:
        self.stats = stats
        self.on_yield = on_yield
        self.output = output if output is not None else sys.stdout
        self.status = MachineStatus.SYSTEM
        # Optional CPU whose delayed load is completed before handlers run.
        self.machine: Any = None
        self._level = IntStatus.OFF
        self._queue: List[_QueueItem] = []
        self._counter = itertools.count()
        self._in_handler = False
        self._yield_on_return = False

    @property
    def level(self) -> IntStatus:
        """Whether interrupts are currently enabled."""
        return self._level

    @property
    def in_handler(self) -> bool:
        """True while an interrupt handler is running."""
        return self._in_handler

    @property
    def pending(self) -> List[PendingInterrupt]:
        """The scheduled interrupts, in the order they will fire."""
        return [item.pending for item in sorted(self._queue)]

    def _change_level(self, old: IntStatus, now: IntStatus) -> None:
        self._level = now
        logger.debug("\tinterrupts: %s -> %s", old.label, now.label)

    def set_level(self, now: IntStatus) -> IntStatus:
        """Enable or disable interrupts and return the previous level.

        Enabling interrupts that were disabled advances simulated time.
        """
        now = IntStatus(now)
        old = self._level
        if now is IntStatus.ON and self._in_handler:
            raise RuntimeError("interrupt handlers may not enable interrupts")
        self._change_level(old, now)
        if now is IntStatus.ON and old is IntStatus.OFF:
            self.one_tick()
        return old

    def enable(self) -> None:
        """Enable interrupts."""
        self.set_level(IntStatus.ON)

    def one_tick(self) -> None:
        """Advance simulated time and fire any interrupts now due."""
        old_status = self.status
        if self.status is MachineStatus.SYSTEM:
            self.stats.total_ticks += SYSTEM_TICK
            self.stats.system_ticks += SYSTEM_TICK
        else:
            self.stats.total_ticks += USER_TICK
            self.stats.user_ticks += USER_TICK
        logger.debug("== Tick %d ==", self.stats.total_ticks)

        self._change_level(IntStatus.ON, IntStatus.OFF)
        self.check_if_due(False)
        self._change_level(IntStatus.OFF, IntStatus.ON)
        if self._yield_on_return:
            self._yield_on_return = False
            self.status = MachineStatus.SYSTEM
            if self.on_yield is not None:
                self.on_yield()
            self.status = old_status

    def yield_on_return(self) -> None:
        """From inside a handler, request a context switch once it returns."""
        if not self._in_handler:
            raise RuntimeError("yield_on_return called outside an interrupt handler")
        self._yield_on_return = True

    def idle(self) -> None:
        """Advance time to the next pending interrupt, or halt if there is none."""
        logger.debug("Machine idling; checking for interrupts.")
        self.status = MachineStatus.IDLE
        if self.check_if_due(True):
            self.status = MachineStatus.SYSTEM
            return
        logger.debug("Machine idle.  No interrupts to do.")
        self.output.write("No threads ready or runnable, and no pending interrupts.\n")
        self.output.write("Assuming the program completed.\n")
        self.halt()

    def halt(self) -> None:
        """Print the statistics and stop the machine by raising MachineHalted."""
        self.output.write("\nMachine halting!\n\n")
        self.output.write(self.stats.report())
        raise MachineHalted("machine halted")

    def schedule(self, to_call: CallBackObj, from_now: int, kind: IntType) -> None:
        """Arrange for ``to_call`` to be called ``from_now`` ticks in the future."""
        if from_now <= 0:
            raise ValueError("an interrupt must be scheduled in the future")
        kind = IntType(kind)
        when = self.stats.total_ticks + from_now
        logger.debug(
            "Scheduling interrupt handler the %s at time = %d", kind.label, when
        )
        pending = PendingInterrupt(to_call, when, kind)
        heapq.heappush(self._queue, _QueueItem(when, next(self._counter), pending))

    def check_if_due(self, advance_clock: bool) -> bool:
        """Fire the interrupts that are due; return True if any fired.

        With ``advance_clock`` set, time jumps ahead to the next pending
        interrupt when none is due yet.
        """
        if self._level is not IntStatus.OFF:
            raise RuntimeError("interrupts must be disabled to run handlers")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s", self._state_text())
        if not self._queue:
            return False
        nxt = self._queue[0].pending
        if nxt.when > self.stats.total_ticks:
            if not advance_clock:
                return False
            self.stats.idle_ticks += nxt.when - self.stats.total_ticks
            self.stats.total_ticks = nxt.when

        logger.debug(
            "Invoking interrupt handler for the %s at time %d", nxt.kind.label, nxt.when
        )
        if self.machine is not None:
            self.machine.delayed_load(0, 0)

        self._in_handler = True
        try:
            while True:
                item = heapq.heappop(self._queue)
                item.pending.call_on_interrupt.call_back()
                if not self._queue or self._queue[0].when > self.stats.total_ticks:
                    break
        finally:
            self._in_handler = False
        return True

    def _state_text(self) -> str:
        entries = "".join(
            f"Interrupt handler {p.kind.label}, scheduled at {p.when}"
            for p in self.pending
        )
        return (
            f"Time: {self.stats.total_ticks}, interrupts {self._level.label}\n"
            "Pending interrupts:\n"
            f"{entries}"
            "\nEnd of pending interrupts\n"
        )

    def dump_state(self) -> None:
        """Print the interrupt level and every scheduled interrupt."""
        self.output.write(self._state_text())