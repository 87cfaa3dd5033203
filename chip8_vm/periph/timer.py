"""
CHIP-8 Virtual Machine — Delay and Sound Timers

Both timers are 8-bit counters that decrement toward zero once per tick
(~16 ms) on their own schedule. The CPU only ever calls get() and set():

  Fx07  LDDT  VX <- DT
  Fx15  STDT  DT <- VX
  Fx18  STST  ST <- VX

Threading model: once start()ed, a daemon thread owns the counter. It
is the only writer; set() posts the new value on a queue and the tick
thread applies it between ticks. get() reads whatever value is stored
at that moment, there is no ordering with respect to a pending tick.
Without a running thread (tests, single-stepping) set() stores directly
and tick() can be driven by hand.

The sound timer switches a tone on when its counter leaves zero and off
when it returns to zero.
"""

import logging
import queue
import threading
import time
from typing import Callable, Optional

from ..config import TIMER_TICK_S, TIMER_MAX

logger = logging.getLogger(__name__)


class Timer:
    """Free-running 8-bit down counter."""

    def __init__(self, tick_s: float = TIMER_TICK_S,
                 on_change: Optional[Callable[[int], None]] = None):
        self.tick_s = tick_s
        self.on_change = on_change
        self._value = 0
        self._updates: "queue.Queue[Optional[int]]" = queue.Queue()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- CPU-facing interface ---

    def get(self) -> int:
        return self._value

    def set(self, value: int):
        value &= TIMER_MAX
        if self.running:
            self._updates.put(value)
        else:
            self._store(value)

    # --- Counter ---

    def tick(self):
        """One decrement, saturating at zero."""
        if self._value > 0:
            self._store(self._value - 1)

    def _store(self, value: int):
        self._value = value
        if self.on_change is not None:
            self.on_change(value)

    def reset(self):
        self._store(0)

    # --- Background thread ---

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._tick_loop,
                                        name=type(self).__name__, daemon=True)
        self._thread.start()

    def stop(self):
        if self._thread is None:
            return
        self._stop.set()
        self._updates.put(None)  # wake the tick loop
        self._thread.join()
        self._thread = None
        # Apply anything posted after the last loop iteration
        while True:
            try:
                value = self._updates.get_nowait()
            except queue.Empty:
                break
            if value is not None:
                self._store(value)

    def _tick_loop(self):
        next_tick = time.monotonic() + self.tick_s
        while not self._stop.is_set():
            timeout = max(0.0, next_tick - time.monotonic())
            try:
                value = self._updates.get(timeout=timeout)
            except queue.Empty:
                self.tick()
                next_tick += self.tick_s
                continue
            if value is not None:
                self._store(value)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


class DelayTimer(Timer):
    """General purpose countdown read back by LDDT."""
    pass


def log_tone(on: bool):
    """Default tone: log the transition instead of producing audio."""
    if on:
        logger.info("BEEP.start.")
    else:
        logger.info("BEEP.end.")


class SoundTimer(Timer):
    """Countdown that keeps a tone playing while it is non-zero.

    `tone(on)` is called once per transition, never repeatedly for the
    same state.
    """

    def __init__(self, tick_s: float = TIMER_TICK_S,
                 tone: Callable[[bool], None] = log_tone):
        super().__init__(tick_s, on_change=self._on_change)
        self.tone = tone
        self.playing = False

    def _on_change(self, value: int):
        if value == 0:
            if self.playing:
                self.playing = False
                self.tone(False)
        elif not self.playing:
            self.playing = True
            self.tone(True)
