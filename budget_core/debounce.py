"""Trailing-edge debouncing for free-text search input."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, Callable, List, Optional

from .models import LedgerRow
from .queries import FilterSpec, SortKey

logger = logging.getLogger(__name__)

HISTORY_SEARCH_DELAY = 0.12
REPORT_SEARCH_DELAY = 0.15


class Debouncer:
    """Run ``callback`` once input has been quiet for ``delay`` seconds.

    Each trigger schedules a timer. A timer that fires after a newer trigger
    simply does nothing, so only the last call in a burst runs.
    """

    def __init__(self, delay: float, callback: Callable[..., Any]) -> None:
        self._delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._generation = 0
        self._timers: List[threading.Timer] = []

    def trigger(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._timers = [timer for timer in self._timers if timer.is_alive()]
            timer = threading.Timer(self._delay, self._fire, args=(generation, args, kwargs))
            timer.daemon = True
            self._timers.append(timer)
        timer.start()

    def _fire(self, generation: int, args: tuple, kwargs: dict) -> None:
        with self._lock:
            if generation != self._generation:
                return
        self._callback(*args, **kwargs)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for scheduled timers; mainly useful for shutdown and tests."""
        with self._lock:
            timers = list(self._timers)
        for timer in timers:
            timer.join(timeout)


class LiveSearch:
    """Debounced text filtering on top of :meth:`LedgerService.list`."""

    def __init__(
        self,
        ledger: Any,
        on_result: Callable[[List[LedgerRow]], Any],
        *,
        delay: float = HISTORY_SEARCH_DELAY,
        filters: Optional[FilterSpec] = None,
        sort: object = SortKey.DATE_DESC,
    ) -> None:
        self._ledger = ledger
        self._on_result = on_result
        self._filters = filters or FilterSpec()
        self._sort = sort
        self._debouncer = Debouncer(delay, self._run)

    def update(self, text: str) -> None:
        self._debouncer.trigger(text)

    def join(self, timeout: Optional[float] = None) -> None:
        self._debouncer.join(timeout)

    def _run(self, text: str) -> None:
        rows = self._ledger.list(replace(self._filters, text=text), self._sort)
        logger.debug("Live search %r matched %d rows", text, len(rows))
        self._on_result(rows)
