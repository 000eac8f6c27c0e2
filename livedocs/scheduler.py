"""Trailing-edge debounce with argument accumulation.

:class:`Debouncer` holds the pure state (accumulated items and a deadline)
and is driven by an explicit clock value, so coalescing can be tested
without real timers. :class:`DebouncedCall` drives a debouncer with
``threading.Timer`` and invokes a callback once per quiet window with the
union of every item scheduled during the burst.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Generic, Hashable, Iterable, TypeVar

from .constants import REBUILD_DELAY_SECONDS
from .errors import LivedocsError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)

Clock = Callable[[], float]


class Debouncer(Generic[T]):
    """Accumulate items until no new item has arrived for ``wait`` seconds."""

    def __init__(self, wait: float = REBUILD_DELAY_SECONDS) -> None:
        if wait < 0:
            raise ValueError("wait must not be negative")
        self.wait = wait
        self._items: dict[T, None] = {}
        self._deadline: float | None = None

    @property
    def pending(self) -> bool:
        return bool(self._items)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def add(self, items: Iterable[T], now: float) -> float:
        """Record ``items`` and restart the quiet window; returns the new deadline."""
        for item in items:
            self._items.setdefault(item, None)
        self._deadline = now + self.wait
        return self._deadline

    def remaining(self, now: float) -> float:
        if self._deadline is None:
            return 0.0
        return max(0.0, self._deadline - now)

    def poll(self, now: float) -> list[T] | None:
        """Return the batch once the window has elapsed, else ``None``."""
        if not self._items or self._deadline is None or now < self._deadline:
            return None
        return self.drain()

    def drain(self) -> list[T]:
        batch = list(self._items)
        self._items.clear()
        self._deadline = None
        return batch


class DebouncedCall(Generic[T]):
    """Run ``callback(batch)`` once per burst of calls.

    Calls made while a previous batch is running start a new window; their
    batch runs after the current one finishes because every run holds
    ``run_lock``. Sharing one lock between several debounced operations
    serializes all of them.
    """

    def __init__(
        self,
        callback: Callable[[list[T]], object],
        *,
        wait: float = REBUILD_DELAY_SECONDS,
        name: str | None = None,
        run_lock: threading.Lock | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._callback = callback
        self._debouncer: Debouncer[T] = Debouncer(wait)
        self._clock = clock
        self._lock = threading.Lock()
        self._run_lock = run_lock or threading.Lock()
        self._timer: threading.Timer | None = None
        self.name = name or getattr(callback, "__name__", "debounced")

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._debouncer.pending

    def __call__(self, *items: T | Iterable[T]) -> None:
        flattened = list(_flatten(items))
        with self._lock:
            self._debouncer.add(flattened, self._clock())
            self._arm(self._debouncer.wait)

    def flush(self) -> None:
        """Run any pending batch now, bypassing the quiet window."""
        with self._lock:
            self._cancel_timer()
            batch = self._debouncer.drain()
        if batch:
            self._run(batch)

    def cancel_timer(self) -> None:
        with self._lock:
            self._cancel_timer()

    def _arm(self, delay: float) -> None:
        self._cancel_timer()
        timer = threading.Timer(delay, self._fire)
        timer.daemon = True
        timer.name = f"debounce-{self.name}"
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        with self._lock:
            now = self._clock()
            batch = self._debouncer.poll(now)
            if batch is None:
                if self._debouncer.pending:
                    self._arm(self._debouncer.remaining(now))
                return
            self._timer = None
        self._run(batch)

    def _run(self, batch: list[T]) -> None:
        with self._run_lock:
            logger.debug("Running %s for %d item(s)", self.name, len(batch))
            try:
                self._callback(batch)
            except LivedocsError as exc:
                logger.error("%s", exc)
            except Exception:
                logger.exception("%s failed", self.name)


def _flatten(items: Iterable[object]) -> Iterable[T]:
    for item in items:
        if isinstance(item, (list, tuple, set, frozenset)):
            yield from item  # type: ignore[misc]
        else:
            yield item  # type: ignore[misc]
