"""Exclusive task gate with FIFO queueing and cooperative timeouts."""

from task_gate.gate.cancellation import CancellationToken
from task_gate.gate.errors import (
    TIMEOUT_REASON,
    CancelledWhileQueuedError,
    GateTimeoutError,
    OperationCancelledError,
    TaskGateError,
)
from task_gate.gate.gate import RunContext, RunOptions, TaskGate

__all__ = [
    "TIMEOUT_REASON",
    "CancellationToken",
    "CancelledWhileQueuedError",
    "GateTimeoutError",
    "OperationCancelledError",
    "RunContext",
    "RunOptions",
    "TaskGate",
    "TaskGateError",
]
