"""
Error taxonomy for benchmark scenarios.

Only TransientTransferError is handled where it is raised (by retrying the
range read). Everything else propagates to the scenario boundary and fails
the run without emitting a result record.
"""

from typing import Optional


class BenchmarkError(Exception):
    """Base class for all benchmark failures."""


class InvalidScenario(BenchmarkError, ValueError):
    """Bad or missing scenario parameters, detected before any I/O."""


class BackendUnavailable(BenchmarkError):
    """The storage URI cannot be parsed, reached or opened."""


class TransientTransferError(BenchmarkError):
    """A single read or write attempt failed and may be retried."""


class ShortRead(TransientTransferError):
    """A range read returned fewer (or more) bytes than requested."""

    def __init__(self, key: str, offset: int, expected: int, actual: int):
        super().__init__(
            f"Short read for {key} at offset {offset}: expected {expected} bytes, got {actual}"
        )
        self.key = key
        self.offset = offset
        self.expected = expected
        self.actual = actual


class TransferExhausted(BenchmarkError):
    """A transfer failed on every allowed attempt; the scenario is aborted."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


class SizeMismatch(BenchmarkError):
    """Total bytes retrieved differ from the expected object size."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Retrieved {actual} bytes, expected {expected}")
        self.expected = expected
        self.actual = actual


class ObjectNotFound(BackendUnavailable):
    """The addressed object does not exist on the backend."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key
