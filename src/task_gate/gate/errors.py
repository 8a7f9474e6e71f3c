"""Exceptions raised by the task gate and by work honoring its tokens."""

from __future__ import annotations

from typing import Any

TIMEOUT_REASON = "timeout"


class TaskGateError(Exception):
    """Base class for task gate errors."""


class OperationCancelledError(TaskGateError):
    """Work observed a cancelled token and stopped early."""

    def __init__(self, reason: Any = None) -> None:
        self.reason = reason
        message = "Operation cancelled"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)


class GateTimeoutError(OperationCancelledError):
    """The run deadline fired and the work honored it."""

    def __init__(self, reason: Any = TIMEOUT_REASON) -> None:
        super().__init__(reason)


class CancelledWhileQueuedError(TaskGateError):
    """A queued request was dropped by ``cancel_all`` before it was granted."""

    def __init__(self, reason: Any = None) -> None:
        self.reason = reason
        message = "Cancelled while queued"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)
