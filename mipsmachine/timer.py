"""Simulated hardware timer that interrupts the CPU periodically."""

from __future__ import annotations

import random
from typing import Optional

from mipsmachine.interrupt import CallBackObj, Interrupt, IntType
from mipsmachine.stats import TIMER_TICKS


class Timer(CallBackObj):
    """Calls ``callback`` every TIMER_TICKS ticks, or after random delays.

    With ``randomize`` set, each delay is drawn from 1 to 2 * TIMER_TICKS
    using ``rng``.
    """

    def __init__(
        self,
        interrupt: Interrupt,
        callback: CallBackObj,
        randomize: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._interrupt = interrupt
        self._callback = callback
        self._randomize = randomize
        self._rng = rng if rng is not None else random.Random()
        self._disabled = False
        self._set_interrupt()

    @property
    def disabled(self) -> bool:
        """True once the timer has been turned off."""
        return self._disabled

    def disable(self) -> None:
        """Stop the timer from scheduling any further interrupts."""
        self._disabled = True

    def call_back(self) -> None:
        """Run the handler, then schedule the next interrupt unless disabled."""
        self._callback.call_back()
        self._set_interrupt()

    def _set_interrupt(self) -> None:
        if self._disabled:
            return
        delay = TIMER_TICKS
        if self._randomize:
            delay = 1 + self._rng.randrange(TIMER_TICKS * 2)
        self._interrupt.schedule(self, delay, IntType.TIMER)