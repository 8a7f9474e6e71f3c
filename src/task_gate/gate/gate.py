"""Single-flight exclusive task gate.

At most one unit of work runs at a time. Later requests wait in a FIFO queue
and are handed the lock directly by the finishing run, so there is never an
idle gap between two queued runs. Each run gets a fresh ``CancellationToken``
that is cancelled with reason ``"timeout"`` when its deadline fires. The
deadline only signals: the gate always awaits the work before releasing.

Calling ``run_exclusive`` on the same gate from inside a run deadlocks, since
the inner call queues behind the outer one.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from task_gate.gate.cancellation import CancellationToken
from task_gate.gate.errors import TIMEOUT_REASON, CancelledWhileQueuedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Work = Callable[[CancellationToken], Awaitable[T]]
BusyListener = Callable[[bool], None]


@dataclass(slots=True, frozen=True)
class RunOptions:
    """Per-call options for ``run_exclusive``.

    ``timeout_ms`` of ``None`` falls back to the gate default; a non-finite or
    non-positive value disables the deadline. ``label`` only shows up in logs.
    """

    timeout_ms: float | None = None
    label: str | None = None


@dataclass(slots=True)
class RunContext:
    """State owned by the single active run."""

    token: CancellationToken
    label: str
    started_at: float
    timer: asyncio.TimerHandle | None = None

    def disarm(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class TaskGate:
    """FIFO exclusive scheduler for coroutine work on one event loop."""

    def __init__(self, *, default_timeout_ms: float | None = None) -> None:
        self._default_timeout_ms = default_timeout_ms
        self._locked = False
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._listeners: list[BusyListener] = []
        self._active: RunContext | None = None

    def __repr__(self) -> str:
        extra = "locked" if self._locked else "unlocked"
        if self._waiters:
            extra = f"{extra}, waiters:{len(self._waiters)}"
        return f"<TaskGate [{extra}]>"

    @property
    def busy(self) -> bool:
        return self._locked

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def active(self) -> RunContext | None:
        return self._active

    def subscribe(self, listener: BusyListener) -> Callable[[], None]:
        """Register ``listener(busy)`` for busy transitions; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def run_exclusive(self, work: Work[T], options: RunOptions | None = None) -> T:
        """Run ``work(token)`` once every earlier request has finished."""

        await self._acquire()
        return await self._run_granted(work, options or RunOptions())

    async def try_run_exclusive(self, work: Work[T], options: RunOptions | None = None) -> T | None:
        """Run ``work`` only if nothing is running; otherwise return ``None`` without queueing."""

        if self._locked:
            logger.debug("Gate busy, skipping %s", _label(options))
            return None
        self._lock()
        return await self._run_granted(work, options or RunOptions())

    def cancel_all(self, reason: Any = None) -> int:
        """Drop every queued request; the running one is left alone.

        Each dropped caller gets ``CancelledWhileQueuedError``. Returns how many
        requests were dropped.
        """

        dropped = 0
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            waiter.set_exception(CancelledWhileQueuedError(reason))
            dropped += 1
        if dropped:
            logger.warning("Dropped %d queued task(s): %s", dropped, reason)
        return dropped

    async def _acquire(self) -> None:
        if not self._locked:
            self._lock()
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            # Handed the lock but cancelled before resuming: pass it on.
            if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
                self._release()
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            logger.debug("Handing gate to next waiter (%d still queued)", len(self._waiters))
            waiter.set_result(None)
            return
        self._locked = False
        self._notify(False)

    def _lock(self) -> None:
        self._locked = True
        self._notify(True)

    async def _run_granted(self, work: Work[T], options: RunOptions) -> T:
        context = RunContext(
            token=CancellationToken(),
            label=_label(options),
            started_at=time.monotonic(),
        )
        self._active = context
        try:
            timeout_ms = self._resolve_timeout(options)
            if timeout_ms is not None:
                context.timer = asyncio.get_running_loop().call_later(
                    timeout_ms / 1000.0,
                    self._on_deadline,
                    context,
                    timeout_ms,
                )
            logger.debug("Gate granted to %s (timeout_ms=%s)", context.label, timeout_ms)
            return await work(context.token)
        finally:
            context.disarm()
            self._active = None
            logger.debug(
                "Gate released by %s after %.3fs",
                context.label,
                time.monotonic() - context.started_at,
            )
            self._release()

    def _resolve_timeout(self, options: RunOptions) -> float | None:
        timeout_ms = options.timeout_ms
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms
        if timeout_ms is None or not math.isfinite(timeout_ms) or timeout_ms <= 0:
            return None
        return float(timeout_ms)

    def _on_deadline(self, context: RunContext, timeout_ms: float) -> None:
        context.timer = None
        if context.token.cancel(TIMEOUT_REASON):
            logger.info(
                "Run %s hit its %.0f ms deadline, signalling cancellation",
                context.label,
                timeout_ms,
            )

    def _notify(self, busy: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(busy)
            except Exception:
                logger.exception("Busy listener %r failed", listener)


def _label(options: RunOptions | None) -> str:
    if options is not None and options.label:
        return options.label
    return "<unlabelled>"
