"""Rotating code display loop for presenting terminals.

The presenter regenerates the code on step boundaries. A separate
``refresh_seconds`` lets a UI redraw more often (e.g. a countdown)
without changing the protocol step.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

from attendcode.auth.totp import CodeEngine
from attendcode.models import GeneratedCode

logger = logging.getLogger(__name__)

MIN_DELAY_S = 0.05
ERROR_RETRY_S = 5.0


class Clock(Protocol):
    def now(self) -> float: ...


class SystemClock:
    def now(self) -> float:
        return time.time()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def set(self, now: float) -> None:
        self._now = now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class Ticker(Protocol):
    """Cancellable repeating timer.

    ``callback`` returns the delay in seconds before its next call.
    """

    def start(self, callback: Callable[[], float], initial_delay: float = 0.0) -> None: ...

    def cancel(self) -> None: ...

    @property
    def running(self) -> bool: ...


class ThreadTicker:
    """Ticker running the callback on a daemon thread."""

    def __init__(self, name: str = "code-ticker", error_retry_s: float = ERROR_RETRY_S) -> None:
        self.name = name
        self.error_retry_s = error_retry_s
        self._stop: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def start(self, callback: Callable[[], float], initial_delay: float = 0.0) -> None:
        with self._lock:
            self._cancel_locked()
            stop = threading.Event()
            thread = threading.Thread(
                target=self._loop,
                args=(callback, stop, initial_delay),
                name=self.name,
                daemon=True,
            )
            self._stop, self._thread = stop, thread
            thread.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._stop is not None:
            self._stop.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._stop = None
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self, callback: Callable[[], float], stop: threading.Event, delay: float) -> None:
        # Each start() owns its own event, so a cancelled loop can never be revived.
        while not stop.wait(max(delay, 0.0)):
            try:
                delay = callback()
            except Exception:
                logger.error("Ticker %s callback failed", self.name, exc_info=True)
                delay = self.error_retry_s


class CodePresenter:
    """Keeps the displayed code current for one secret source."""

    def __init__(
        self,
        engine: CodeEngine,
        secret_source: Callable[[], str],
        on_code: Callable[[GeneratedCode], None],
        clock: Clock | None = None,
        ticker: Ticker | None = None,
        refresh_seconds: float | None = None,
    ) -> None:
        if refresh_seconds is not None and refresh_seconds <= 0:
            raise ValueError("refresh_seconds must be positive")
        self.engine = engine
        self.secret_source = secret_source
        self.on_code = on_code
        self.clock = clock or SystemClock()
        self.ticker = ticker or ThreadTicker()
        self.refresh_seconds = refresh_seconds
        self.current: GeneratedCode | None = None

    def next_delay(self) -> float:
        """Seconds until the next step boundary, capped by ``refresh_seconds``."""
        now = self.clock.now()
        _, boundary = self.engine.step_bounds(self.engine.counter_at(now))
        delay = boundary - now
        if self.refresh_seconds is not None:
            delay = min(delay, self.refresh_seconds)
        return max(delay, MIN_DELAY_S)

    def tick(self) -> float:
        """Regenerate the code; notify only when it changed."""
        code = self.engine.generate(self.secret_source(), self.clock.now())
        if code != self.current:
            self.current = code
            self.on_code(code)
        return self.next_delay()

    def start(self) -> None:
        self.ticker.cancel()
        delay = self.tick()
        self.ticker.start(self.tick, initial_delay=delay)
        logger.info("Presenter started (step=%ss, refresh=%s)",
                    self.engine.config.step_seconds, self.refresh_seconds)

    def stop(self) -> None:
        self.ticker.cancel()
        logger.info("Presenter stopped")

    @property
    def running(self) -> bool:
        return self.ticker.running
