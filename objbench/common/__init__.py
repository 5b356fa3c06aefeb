"""
Common utilities for the storage benchmark.
"""

from .concurrency_gate import ConcurrencyGate
from .errors import (
    BenchmarkError,
    InvalidScenario,
    BackendUnavailable,
    ObjectNotFound,
    TransientTransferError,
    ShortRead,
    TransferExhausted,
    SizeMismatch,
)

__all__ = [
    'ConcurrencyGate',
    'BenchmarkError',
    'InvalidScenario',
    'BackendUnavailable',
    'ObjectNotFound',
    'TransientTransferError',
    'ShortRead',
    'TransferExhausted',
    'SizeMismatch',
]
