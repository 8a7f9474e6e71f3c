"""Cooperative one-shot cancellation token handed to gated work."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from task_gate.gate.errors import TIMEOUT_REASON, GateTimeoutError, OperationCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Observable signal that a run should stop as soon as it conveniently can.

    The token never interrupts anything on its own. Work polls ``cancelled``,
    calls ``raise_if_cancelled()`` between steps, awaits ``wait()``, or passes
    the token to sub-operations that know how to abort (see
    ``task_gate.imaging.provider``). Once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Any = None
        self._callbacks: list[Callable[[CancellationToken], None]] = []
        self._event: asyncio.Event | None = None

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self._cancelled else "active"
        return f"<CancellationToken [{state}]>"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def timed_out(self) -> bool:
        return self._cancelled and self._reason == TIMEOUT_REASON

    def cancel(self, reason: Any = None) -> bool:
        """Mark the token cancelled. Returns False if it already was."""

        if self._cancelled:
            return False
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._invoke(callback)
        return True

    def add_callback(self, callback: Callable[[CancellationToken], None]) -> Callable[[], None]:
        """Call ``callback(token)`` once on cancellation; returns a remover.

        If the token is already cancelled the callback runs immediately.
        """

        if self._cancelled:
            self._invoke(callback)
            return _noop
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def raise_if_cancelled(self) -> None:
        if not self._cancelled:
            return
        if self.timed_out:
            raise GateTimeoutError()
        raise OperationCancelledError(self._reason)

    def _invoke(self, callback: Callable[[CancellationToken], None]) -> None:
        try:
            callback(self)
        except Exception:
            logger.exception("Cancellation callback %r failed", callback)

    async def wait(self) -> Any:
        """Suspend until cancelled and return the reason."""

        if not self._cancelled:
            if self._event is None:
                self._event = asyncio.Event()
            await self._event.wait()
        return self._reason


def _noop() -> None:
    return None
