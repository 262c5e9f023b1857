"""Adaptive request pacing for a single API route.

A :class:`RoutePacer` admits queued calls in FIFO order while keeping two
limits: the minimum spacing between successive request starts and the
number of calls in flight. Both limits are recomputed from the quota
headers of every response, so the pace follows whatever budget the server
says is left in the current window.

All admission decisions happen inside one pump coroutine per pacer. Other
operations only mutate state and set the pump's wake-up event; the pump
re-evaluates on every wake-up or when its admission timer expires.
"""

import asyncio
import math
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Deque, Mapping, Optional, Set, TypeVar, Union

from prcclient.core.config import PacingConfig
from prcclient.core.logging import get_log_context, get_logger
from prcclient.ratelimit.headers import (
    MAX_DELAY_MS,
    RateHeaders,
    clamp_delay_ms,
    parse_rate_headers,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Reset values above this cannot be a relative window length in seconds and
# are read as absolute Unix timestamps.
RELATIVE_RESET_CEILING_S = 86_400
# Reset values above this are Unix timestamps in milliseconds.
MILLISECOND_TIMESTAMP_FLOOR = 1e12


def monotonic_ms() -> float:
    """Default pacing clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


@dataclass
class PacingState:
    """Mutable pacing state owned by exactly one pacer.

    Attributes:
        current_interval_ms: Minimum spacing between request starts.
        current_concurrency: Calls allowed in flight at once (>= 1).
        next_available_ms: Clock time before which no call may start.
        window_duration_ms: Length of the current rate window.
        window_reset_at_ms: Clock time the server window resets, if known.
        running_count: Calls currently executing.
        queued: Calls waiting for admission (filled in by snapshots).
    """

    current_interval_ms: float
    current_concurrency: int
    next_available_ms: float
    window_duration_ms: float
    window_reset_at_ms: Optional[float] = None
    running_count: int = 0
    queued: int = 0


@dataclass
class QueuedTask:
    """A pending call and the future that settles it."""

    execute: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"
    enqueued_at_ms: float


class RoutePacer:
    """Per-route pacing engine.

    Args:
        route: Normalized route this pacer governs (used for logging).
        config: Shared pacing configuration.
        clock: Monotonic clock in milliseconds.
        wall_clock: Unix time in seconds, used to read absolute reset stamps.
    """

    def __init__(
        self,
        route: str,
        config: PacingConfig,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], float]] = None,
    ):
        self.route = route
        self.config = config
        self._clock = clock or monotonic_ms
        self._wall_clock = wall_clock or time.time
        self._state = PacingState(
            current_interval_ms=config.default_interval_ms,
            current_concurrency=1,
            next_available_ms=0.0,
            window_duration_ms=config.window_duration_ms,
        )
        self._queue: Deque[QueuedTask] = deque()
        self._inflight: Set["asyncio.Task[None]"] = set()
        self._wakeup: Optional[asyncio.Event] = None
        self._pump: Optional["asyncio.Task[None]"] = None
        self._reset_timer: Optional[asyncio.TimerHandle] = None

    # -- public API ---------------------------------------------------------

    async def schedule(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Queue ``fn`` and return its result once it has been admitted and run.

        Exceptions raised by ``fn`` propagate to the caller unchanged.
        """
        loop = asyncio.get_running_loop()
        task = QueuedTask(
            execute=fn,
            future=loop.create_future(),
            enqueued_at_ms=self._clock(),
        )
        self._queue.append(task)
        self._trace("enqueue", queued=len(self._queue))
        self._ensure_pump(loop)
        self._wake()
        return await task.future

    def update_from_headers(self, headers: Union[Mapping[str, str], RateHeaders]) -> None:
        """Recompute spacing and concurrency from a response's quota headers."""
        rh = headers if isinstance(headers, RateHeaders) else parse_rate_headers(headers)
        now = self._clock()
        self._expire_window(now)
        if rh.reset_seconds is not None:
            self._apply_reset(rh.reset_seconds, now)
        if rh.remaining is not None:
            self._recalculate(rh.remaining, now)
        self._wake()

    def penalize(self, wait_ms: Optional[float]) -> None:
        """Hold back every new start for at least ``wait_ms`` from now."""
        wait = clamp_delay_ms(wait_ms)
        if wait <= 0:
            return
        target = self._clock() + wait
        if target > self._state.next_available_ms:
            self._state.next_available_ms = target
        self._trace("penalize", wait_ms=wait)
        self._wake()

    def snapshot(self) -> PacingState:
        """Return a copy of the current state, applying a due window reset."""
        self._expire_window(self._clock())
        return replace(self._state, queued=len(self._queue))

    async def aclose(self) -> None:
        """Stop the pump and timers; pending calls are cancelled."""
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None
        while self._queue:
            self._queue.popleft().future.cancel()
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
        self._pump = None

    # -- pacing arithmetic --------------------------------------------------

    def _recalculate(self, remaining: float, now: float) -> None:
        # +1: the call that produced these headers is not yet counted
        tokens = max(0.0, remaining) + 1
        reset_at = self._state.window_reset_at_ms
        if reset_at is not None and reset_at > now:
            time_to_reset = reset_at - now
        else:
            time_to_reset = self._state.window_duration_ms

        interval = max(self.config.min_interval_ms, math.ceil(time_to_reset / tokens))
        speedup = (tokens / time_to_reset) * self.config.default_interval_ms
        concurrency = min(max(math.floor(speedup + 0.5), 1), self.config.max_concurrency)

        self._state.current_interval_ms = float(interval)
        self._state.current_concurrency = int(concurrency)
        self._trace(
            "recalculate",
            remaining=remaining,
            time_to_reset_ms=time_to_reset,
            interval_ms=self._state.current_interval_ms,
            concurrency=self._state.current_concurrency,
        )

    def _apply_reset(self, reset: float, now: float) -> None:
        if reset >= MILLISECOND_TIMESTAMP_FLOOR:
            delta_ms = reset - self._wall_clock() * 1000
        elif reset > RELATIVE_RESET_CEILING_S:
            delta_ms = (reset - self._wall_clock()) * 1000
        else:
            delta_ms = reset * 1000
        if delta_ms <= 0:
            return
        delta_ms = min(delta_ms, float(MAX_DELAY_MS))
        self._state.window_reset_at_ms = now + delta_ms
        self._state.window_duration_ms = delta_ms
        self._arm_reset_timer(delta_ms)

    def _expire_window(self, now: float) -> None:
        reset_at = self._state.window_reset_at_ms
        if reset_at is None or now < reset_at:
            return
        self._state.current_interval_ms = self.config.default_interval_ms
        self._state.current_concurrency = 1
        self._state.window_reset_at_ms = None
        self._state.window_duration_ms = self.config.window_duration_ms
        self._trace("window-reset")

    def _arm_reset_timer(self, delay_ms: float) -> None:
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the reset is applied lazily on the next state read.
            return
        self._reset_timer = loop.call_later(delay_ms / 1000, self._on_reset_timer)

    def _on_reset_timer(self) -> None:
        self._reset_timer = None
        now = self._clock()
        reset_at = self._state.window_reset_at_ms
        if reset_at is not None and now < reset_at:
            # Loop timers may fire up to one clock tick early
            self._arm_reset_timer(reset_at - now)
            return
        self._expire_window(now)
        self._wake()

    # -- pump ---------------------------------------------------------------

    def _ensure_pump(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._pump is None or self._pump.done():
            self._wakeup = asyncio.Event()
            self._pump = loop.create_task(self._run(), name=f"pacer:{self.route}")

    def _wake(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()

    async def _run(self) -> None:
        wakeup = self._wakeup
        assert wakeup is not None
        while self._queue:
            now = self._clock()
            self._expire_window(now)

            if self._queue[0].future.done():
                # Caller stopped waiting before admission
                self._queue.popleft()
                continue

            state = self._state
            timeout: Optional[float] = None
            if state.running_count < state.current_concurrency:
                wait_ms = state.next_available_ms - now
                if wait_ms <= 0:
                    self._admit(self._queue.popleft(), now)
                    continue
                timeout = wait_ms
            if state.window_reset_at_ms is not None:
                until_reset = max(0.0, state.window_reset_at_ms - now)
                timeout = until_reset if timeout is None else min(timeout, until_reset)

            wakeup.clear()
            try:
                await asyncio.wait_for(
                    wakeup.wait(),
                    None if timeout is None else timeout / 1000,
                )
            except asyncio.TimeoutError:
                pass

    def _admit(self, task: QueuedTask, now: float) -> None:
        state = self._state
        state.running_count += 1
        state.next_available_ms = max(now, state.next_available_ms) + state.current_interval_ms
        self._trace(
            "admit",
            running=state.running_count,
            queued=len(self._queue),
            waited_ms=now - task.enqueued_at_ms,
        )
        runner = asyncio.ensure_future(self._execute(task))
        self._inflight.add(runner)
        runner.add_done_callback(self._inflight.discard)

    async def _execute(self, task: QueuedTask) -> None:
        try:
            result = await task.execute()
        except asyncio.CancelledError:
            task.future.cancel()
            raise
        except Exception as exc:
            if not task.future.done():
                task.future.set_exception(exc)
        else:
            if not task.future.done():
                task.future.set_result(result)
        finally:
            self._state.running_count -= 1
            self._wake()

    def _trace(self, event: str, **fields: Any) -> None:
        if self.config.debug:
            logger.debug(event, extra=get_log_context(event=event, route=self.route, **fields))
