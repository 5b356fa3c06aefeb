"""
Logical range transfers and their retry state machine.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class TransferState(str, Enum):
    PENDING = "pending"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Transfer:
    """One logical range movement: bytes [offset, offset + length) of ``key``.

    Owned by the worker that pulled it from the backlog. Moves through
    PENDING -> RETRYING(n) -> SUCCEEDED | FAILED; ``attempts`` counts every
    attempt made so far.
    """

    def __init__(self, key: str, offset: int, length: int, column: Optional[int] = None):
        self.key = key
        self.offset = offset
        self.length = length
        self.column = column
        self.state = TransferState.PENDING
        self.attempts = 0
        self.bytes_received = 0
        self.last_error: Optional[BaseException] = None

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def done(self) -> bool:
        return self.state in (TransferState.SUCCEEDED, TransferState.FAILED)

    def begin_attempt(self) -> int:
        if self.done:
            raise RuntimeError(f"Transfer {self!r} already finished")
        self.attempts += 1
        return self.attempts

    def succeed(self, bytes_received: int) -> None:
        self.bytes_received = bytes_received
        self.state = TransferState.SUCCEEDED

    def fail_attempt(self, error: BaseException, max_attempts: int) -> bool:
        """Record a failed attempt; return True if another attempt is allowed."""
        self.last_error = error
        if self.attempts >= max_attempts:
            self.state = TransferState.FAILED
            return False
        self.state = TransferState.RETRYING
        return True

    def __repr__(self) -> str:
        column = f", column={self.column}" if self.column is not None else ""
        return (
            f"Transfer({self.key}[{self.offset}:{self.end}]{column}, "
            f"state={self.state.value}, attempts={self.attempts})"
        )
