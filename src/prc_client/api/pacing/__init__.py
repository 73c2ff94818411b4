"""Request pacing for the PRC API.

Components:
- RequestQueue: Fixed worker pool with global start pacing
- RetryPolicy: Retry decisions and jittered exponential backoff
"""

from .queue import QueuedTask, RequestQueue, TaskState
from .retry import RetryPolicy

__all__ = [
    # Queue
    "QueuedTask",
    "RequestQueue",
    "TaskState",
    # Retry
    "RetryPolicy",
]
