"""Periodic polling of the readings source with bounded retries."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from models.records import Reading

logger = logging.getLogger(__name__)

ReadingSource = Callable[[], Awaitable[Sequence[Reading]]]
OutcomeListener = Callable[["PollOutcome"], None]
StartListener = Callable[[], None]


@dataclass(frozen=True)
class PollOutcome:
    """Result of one poll cycle, after retries."""

    readings: Tuple[Reading, ...]
    ok: bool
    attempts: int
    error: Optional[str] = None


class PollingScheduler:
    """Drives periodic refreshes; manual and timed refreshes share one path.

    Only one poll is ever in flight. A refresh requested while a poll is
    running waits for that poll instead of starting another fetch. After
    ``stop()`` no completion touches state or reaches listeners.
    """

    def __init__(
        self,
        source: ReadingSource,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self._source = source
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

        self.readings: Tuple[Reading, ...] = ()
        self.error: Optional[str] = None
        self.loading = False
        self.calls = 0

        self._outcome_listeners: List[OutcomeListener] = []
        self._start_listeners: List[StartListener] = []
        self._inflight: Optional[asyncio.Task[PollOutcome]] = None
        self._timer: Optional[asyncio.Task[None]] = None
        self._generation = 0
        self._stopped = False

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def subscribe(
        self,
        on_outcome: OutcomeListener,
        on_start: Optional[StartListener] = None,
    ) -> None:
        self._outcome_listeners.append(on_outcome)
        if on_start is not None:
            self._start_listeners.append(on_start)

    def start(self, interval: float, source: Optional[ReadingSource] = None) -> None:
        """Begin polling every ``interval`` seconds, first poll immediately."""
        if interval <= 0:
            raise ValueError("Polling interval must be positive.")
        if source is not None:
            self._source = source
        if self.running:
            return
        self._stopped = False
        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._run(interval))
        logger.info("Polling started every %.1fs", interval)

    def stop(self) -> None:
        """Cancel the timer and any in-flight poll; late results are dropped."""
        self._stopped = True
        self._generation += 1
        for task in (self._timer, self._inflight):
            if task is not None and not task.done():
                task.cancel()
        self._timer = None
        self._inflight = None
        self.loading = False

    async def aclose(self) -> None:
        pending = [task for task in (self._timer, self._inflight) if task is not None]
        self.stop()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def refresh(self) -> PollOutcome:
        """Poll now, or join the poll already in flight.

        After ``stop()`` no new fetch is started; the last known state is
        returned instead, including to callers joined on a poll that
        ``stop()`` cancelled.
        """
        if self._stopped:
            return self._current_outcome()
        task = self._ensure_inflight()
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if self._stopped and task.cancelled():
                return self._current_outcome()
            raise

    def _ensure_inflight(self) -> asyncio.Task[PollOutcome]:
        if self._inflight is None or self._inflight.done():
            loop = asyncio.get_running_loop()
            self._inflight = loop.create_task(self._poll(self._generation))
        return self._inflight

    def _current_outcome(self) -> PollOutcome:
        return PollOutcome(
            readings=self.readings,
            ok=self.error is None,
            attempts=0,
            error=self.error,
        )

    async def _run(self, interval: float) -> None:
        while not self._stopped:
            try:
                await asyncio.shield(self._ensure_inflight())
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Poll cycle raised; polling continues")
            await asyncio.sleep(interval)

    def _is_current(self, generation: int) -> bool:
        return not self._stopped and generation == self._generation

    async def _poll(self, generation: int) -> PollOutcome:
        self.loading = True
        for listener in list(self._start_listeners):
            self._call_listener(listener)

        started = time.perf_counter()
        last_error = "unknown error"
        for attempt in range(1, self.max_attempts + 1):
            self.calls += 1
            try:
                readings = tuple(await self._source())
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # every source failure is retryable
                last_error = str(exc) or type(exc).__name__
                logger.warning(
                    "Poll attempt failed",
                    extra={
                        "attempt": attempt,
                        "max_attempts": self.max_attempts,
                        "reason": last_error,
                    },
                )
                if attempt < self.max_attempts:
                    await self._sleep(self.retry_delay * 2 ** (attempt - 1))
                continue

            outcome = PollOutcome(readings=readings, ok=True, attempts=attempt)
            if self._is_current(generation):
                self.readings = readings
                self.error = None
                self.loading = False
                logger.info(
                    "Poll succeeded",
                    extra={
                        "attempt": attempt,
                        "max_attempts": self.max_attempts,
                        "reading_count": len(readings),
                        "elapsed_ms": int((time.perf_counter() - started) * 1000),
                    },
                )
                self._notify(outcome)
            return outcome

        outcome = PollOutcome(
            readings=self.readings,
            ok=False,
            attempts=self.max_attempts,
            error=last_error,
        )
        if self._is_current(generation):
            self.error = last_error
            self.loading = False
            logger.warning(
                "Poll failed after retries; keeping previous readings",
                extra={
                    "max_attempts": self.max_attempts,
                    "reading_count": len(self.readings),
                    "reason": last_error,
                },
            )
            self._notify(outcome)
        return outcome

    def _notify(self, outcome: PollOutcome) -> None:
        for listener in list(self._outcome_listeners):
            self._call_listener(listener, outcome)

    @staticmethod
    def _call_listener(listener: Callable[..., None], *args: object) -> None:
        # A failing listener must not stop polling or starve the others.
        try:
            listener(*args)
        except Exception:
            logger.exception("Poll listener raised")
